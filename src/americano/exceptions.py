class AmericanoError(Exception):
    """Base class for errors raised around the tournament core."""


class InvalidScore(AmericanoError, ValueError):
    pass


class MatchAlreadyCompleted(AmericanoError):
    def __init__(self, match_id: str):
        super().__init__(f"match {match_id} already has a score")
        self.match_id = match_id


class InvalidMatchRecord(AmericanoError, ValueError):
    pass
