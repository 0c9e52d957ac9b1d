class FischError(Exception):
    pass


class InvalidConfiguration(FischError, ValueError):
    pass


class EmptyLocation(FischError):
    def __init__(self, location_id: str) -> None:
        super().__init__(f"No catchable fish are listed for location '{location_id}'")
        self.location_id = location_id


class FetchFailure(FischError):
    def __init__(self, kind: str, reason: str) -> None:
        super().__init__(f"Failed to fetch {kind}: {reason}")
        self.kind = kind
        self.reason = reason


class MergeKeyCollision(FischError):
    """Two entries share an identity key. Merging resolves this remote-wins and never raises it."""
