import re

import click

_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600}
_DURATION_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([smh]?)\s*$")


class Duration(click.ParamType):
    """A non-negative number of seconds, optionally suffixed with s, m or h."""

    name = "duration"

    def convert(self, value, param, ctx):
        if isinstance(value, (int, float)):
            seconds = float(value)
        else:
            match = _DURATION_PATTERN.match(str(value))
            if not match:
                self.fail(f"{value} is not a valid duration (e.g. 30, 30s, 2m)", param, ctx)
            amount, unit = match.groups()
            seconds = float(amount) * _DURATION_UNITS[unit]
        if seconds < 0:
            self.fail(f"{value} must not be negative", param, ctx)
        return seconds
