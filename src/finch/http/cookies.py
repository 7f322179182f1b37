"""Cookies in both directions: ``Request.cookies`` and ``response.cookie()``."""

from dataclasses import dataclass

# Seconds in a Gregorian year; the default lifetime of response cookies
ONE_YEAR = 31556952


def parse_cookies(header: str) -> dict[str, str]:
    """Map cookie names to values; pairs without ``=`` are skipped."""
    pairs = (part.partition("=") for part in header.split(";"))
    return {name.strip(): value.strip() for name, sep, value in pairs if sep}


@dataclass(frozen=True, slots=True)
class SetCookie:
    """One ``Set-Cookie`` header, hardened unless told otherwise."""

    name: str
    value: str
    max_age: int | None = ONE_YEAR
    path: str = "/"
    secure: bool = True
    httponly: bool = True

    def to_header_value(self) -> str:
        attributes = (
            f"Max-Age={self.max_age}" if self.max_age is not None else "",
            f"Path={self.path}" if self.path else "",
            "HttpOnly" if self.httponly else "",
            "Secure" if self.secure else "",
        )
        return "; ".join((f"{self.name}={self.value}", *filter(None, attributes)))
