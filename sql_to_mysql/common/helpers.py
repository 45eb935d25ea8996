# common/helpers.py


class Helpers:
    @staticmethod
    def format_duration(seconds: float) -> str:
        """
        Elapsed seconds -> "HH hours MM minutes SS seconds",
        rounded to the nearest second.
        """
        total = int(round(max(seconds, 0.0)))
        h, rest = divmod(total, 3600)
        m, s = divmod(rest, 60)
        return f"{h:02d} hours {m:02d} minutes {s:02d} seconds"


format_duration = Helpers.format_duration
