"""Extracts cluster credentials from an ``oc login`` command line."""

import re
from dataclasses import dataclass

from devsandbox.domain.errors import ValidationError

REQUIRED_OPTIONS = ("--server", "--token")

# "--server=URL" or "--server URL"; a following option is not taken as the value
_OPTION_PATTERN = re.compile(r"--(server|token)(?:=|\s+)(?!--)(\S+)")


@dataclass(frozen=True)
class LoginCredentials:
    """Server URL and bearer token taken from a login command."""

    server: str
    token: str


def parse_login_command(command: str) -> LoginCredentials:
    """
    Parse a login command such as the one copied from the OpenShift console.

    Example:
        >>> parse_login_command("oc login --token=sha256~abc --server=https://api.example.com:6443")
        LoginCredentials(server='https://api.example.com:6443', token='sha256~abc')

    Raises:
        ValidationError: Naming every required option that is missing
    """
    values: dict[str, str] = {}
    for option, value in _OPTION_PATTERN.findall(command or ""):
        # first occurrence wins, like the CLI
        values.setdefault(f"--{option}", value)

    missing = [option for option in REQUIRED_OPTIONS if not values.get(option)]
    if missing:
        noun = "options" if len(missing) > 1 else "option"
        raise ValidationError(f"Login command is missing required {noun}: {', '.join(missing)}")

    return LoginCredentials(server=values["--server"], token=values["--token"])
