"""Time system for the simulation: days, seasons, years."""

from settlement_sim.core.config import DAYS_PER_YEAR, SEASON_SCHEDULE


class SimClock:
    """Manages simulation time."""

    def __init__(self, day: int = 0) -> None:
        self.day: int = day

    @property
    def year(self) -> int:
        return self.day // DAYS_PER_YEAR

    @property
    def day_of_year(self) -> int:
        return self.day % DAYS_PER_YEAR

    @property
    def season(self) -> str:
        return self._schedule_position()[0]

    @property
    def days_left_in_season(self) -> int:
        """Days remaining in the current season block, counting today."""
        _, start, length = self._schedule_position()
        return start + length - self.day_of_year

    def advance(self) -> None:
        """Advance the clock by one day."""
        self.day += 1

    def _schedule_position(self) -> tuple[str, int, int]:
        offset = 0
        doy = self.day_of_year
        for season, length in SEASON_SCHEDULE:
            if doy < offset + length:
                return season, offset, length
            offset += length
        # Schedule shorter than the year: the last block absorbs the remainder
        season, length = SEASON_SCHEDULE[-1]
        return season, offset - length, DAYS_PER_YEAR - (offset - length)
