"""
Session-scoped dedup: processed transaction signatures and first-seen mints.
Test-and-insert is a single step on the event loop, so each identity yields
exactly one "new" answer until ``clear()``.
"""


class IdentityGuard:
    def __init__(self):
        self.processed: set[str] = set()
        self.seen_mints: set[str] = set()

    def mark_processed(self, signature: str) -> bool:
        """True the first time ``signature`` is seen."""
        if signature in self.processed:
            return False
        self.processed.add(signature)
        return True

    def mark_first_seen(self, mint: str) -> bool:
        """True the first time ``mint`` is seen."""
        if mint in self.seen_mints:
            return False
        self.seen_mints.add(mint)
        return True

    def clear(self) -> None:
        self.processed.clear()
        self.seen_mints.clear()
