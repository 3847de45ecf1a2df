"""One device's view of a running game."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from teamtrack.client.api import TeamSnapshot, TeamTrackClient
from teamtrack.client.settings import ClientSettings
from teamtrack.geo.discovery import DiscoveryTracker
from teamtrack.geo.distance import Coordinate
from teamtrack.geo.geofence import GameMode, GamePoint, filter_visible_points
from teamtrack.sync.poller import LeaderboardState, SyncPoller

logger = structlog.get_logger()


class DeviceSession:
    """Ties GPS fixes, the local team copy and the store together for one device.

    Local state is only ever replaced from the store (sync tick or a write
    response) or extended with ids this device just reported, so a failed
    write never rolls anything back.
    """

    def __init__(
        self,
        settings: ClientSettings,
        api: TeamTrackClient,
        team: TeamSnapshot,
        points: Iterable[GamePoint] = (),
        mode: GameMode | str = GameMode.PLAY,
    ) -> None:
        self.settings = settings
        self.api = api
        self.team = team
        self.points = list(points)
        self.mode = mode
        self.tracker = DiscoveryTracker(default_radius=settings.default_reveal_radius_m)
        self.last_fix: Coordinate | None = None
        self.rank: int | None = None

    def visible_points(self) -> list[GamePoint]:
        return filter_visible_points(
            self.points,
            self.last_fix,
            team=self.team,
            mode=self.mode,
            default_radius=self.settings.default_reveal_radius_m,
        )

    async def on_location_fix(self, fix: Coordinate | None) -> list[GamePoint]:
        """Feed a GPS fix. Reports each newly discovered point and returns them."""
        discovered = self.tracker.observe(self.points, fix, team=self.team)
        if fix is not None:
            self.last_fix = fix

        for point in discovered:
            logger.info("point_discovered", team_id=self.team.id, point_id=point.id)
            updated = await self.api.record_discovery(self.team.id, point.id)
            if updated is not None:
                self.team = updated
            elif point.id not in self.team.discovered_point_ids:
                self.team = self.team.model_copy(
                    update={"discovered_point_ids": [*self.team.discovered_point_ids, point.id]}
                )
        return discovered

    async def complete_task(self, point_id: str, points_awarded: int) -> bool:
        """Record the completion and its points in one write.

        The store adds the points only if the team had not completed the
        point yet, so a teammate finishing the same task, or a retry after a
        lost response, scores nothing. Returns False if the write failed.
        """
        if point_id in self.team.completed_point_ids:
            return True

        outcome = await self.api.record_completion(self.team.id, point_id, points=points_awarded)
        if not outcome.applied:
            return False
        if outcome.team is not None:
            self.team = outcome.team
        else:
            self.team = self.team.model_copy(
                update={
                    "score": self.team.score + outcome.awarded,
                    "completed_point_ids": [*self.team.completed_point_ids, point_id],
                }
            )
        return True

    def leaderboard_poller(self) -> SyncPoller[TeamSnapshot]:
        """A poller for this game that feeds every tick into ``apply_leaderboard``.

        Not started; enter it (``async with``) while the game view is active.
        """
        poller = SyncPoller(self.api.fetch_teams, self.team.game_id, self.settings.sync_interval_seconds)
        poller.add_listener(self.apply_leaderboard)
        return poller

    def apply_leaderboard(self, state: LeaderboardState) -> None:
        """Sync listener: take our team and rank from the fresh snapshot."""
        fresh = state.team(self.team.id)
        if fresh is not None:
            self.team = fresh
        self.rank = state.rank_of(self.team.id)

    async def send_location_ping(self, accuracy: float | None = None) -> bool | None:
        """Send the last known fix as a breadcrumb. None when there is no fix or the write failed."""
        if self.last_fix is None:
            return None
        return await self.api.record_location(self.team.id, self.team.game_id, self.last_fix, accuracy)
