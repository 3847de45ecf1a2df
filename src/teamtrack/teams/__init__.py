"""Team records: registration, membership, score and progress."""
