from __future__ import annotations

AC1006 = 1006
AC1009 = 1009
AC1012 = 1012
AC1014 = 1014
AC1015 = 1015
AC1018 = 1018
AC1021 = 1021
AC1024 = 1024
AC1027 = 1027
AC1032 = 1032

MIN_VERSION = 0
MAX_VERSION = 9999

SUPPORTED_VERSIONS = ("AC1009", "AC1012", "AC1014", "AC1015", "AC1018", "AC1021", "AC1024", "AC1027", "AC1032")
DEFAULT_VERSION = "AC1015"

RELEASE_ALIASES = {
    "R10": "AC1006",
    "R11": "AC1009",
    "R12": "AC1009",
    "R13": "AC1012",
    "R14": "AC1014",
    "R2000": "AC1015",
    "R2004": "AC1018",
    "R2007": "AC1021",
    "R2010": "AC1024",
    "R2013": "AC1027",
    "R2018": "AC1032",
}


def normalize_version(version: str) -> str:
    """Return the ``ACnnnn`` identifier for a version string or release alias."""
    token = str(version).strip().upper()
    token = RELEASE_ALIASES.get(token, token)
    if len(token) != 6 or not token.startswith("AC") or not token[2:].isdigit():
        raise ValueError(f"unknown DXF version: {version!r}")
    return token


def version_number(version: str | int) -> int:
    if isinstance(version, int):
        return version
    return int(normalize_version(version)[2:])


def version_string(number: int) -> str:
    if not MIN_VERSION < number < MAX_VERSION:
        raise ValueError(f"version number out of range: {number}")
    return f"AC{number:04d}"


def in_range(number: int | None, min_version: int, max_version: int) -> bool:
    if number is None:
        return True
    return min_version <= number <= max_version
