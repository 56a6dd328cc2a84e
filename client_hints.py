"""Client Hints extraction and negotiation headers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

UNKNOWN_OS = "Unknown"

ACCEPT_CH = ", ".join(
    [
        "Sec-CH-UA",
        "Sec-CH-UA-Mobile",
        "Sec-CH-UA-Platform",
        "Sec-CH-UA-Platform-Version",
        "Sec-CH-UA-Arch",
        "Sec-CH-UA-Model",
        "Sec-CH-UA-Full-Version",
        "Sec-CH-UA-Full-Version-List",
    ]
)

PERMISSIONS_POLICY = (
    "ch-ua=*, ch-ua-arch=*, ch-ua-full-version=*, ch-ua-full-version-list=*, "
    "ch-ua-mobile=*, ch-ua-model=*, ch-ua-platform=*, ch-ua-platform-version=*"
)

CRITICAL_CH = "Sec-CH-UA-Platform, Sec-CH-UA-Mobile"


@dataclass(frozen=True, slots=True)
class ServerSupportFlags:
    """Negotiation mechanisms this server implements."""

    accept_ch: bool = True
    permissions_policy: bool = True
    critical_ch: bool = True
    https: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "acceptCH": self.accept_ch,
            "permissionsPolicy": self.permissions_policy,
            "criticalCH": self.critical_ch,
            "https": self.https,
        }


SERVER_SUPPORT = ServerSupportFlags()


@dataclass(frozen=True, slots=True)
class ClientHintsSnapshot:
    user_agent: str | None = None
    mobile: bool = False
    platform: str | None = None
    platform_version: str | None = None
    arch: str | None = None
    model: str | None = None
    full_version: str | None = None
    full_version_list: str | None = None

    @property
    def detected_os(self) -> str:
        return self.platform or UNKNOWN_OS

    @property
    def is_mobile(self) -> bool:
        return self.mobile

    @property
    def has_high_entropy_data(self) -> bool:
        return any(
            (
                self.platform_version,
                self.arch,
                self.model,
                self.full_version,
                self.full_version_list,
            )
        )

    def to_dict(self) -> dict[str, str | bool | None]:
        return {
            "userAgent": self.user_agent,
            "mobile": self.mobile,
            "platform": self.platform,
            "platformVersion": self.platform_version,
            "arch": self.arch,
            "model": self.model,
            "fullVersion": self.full_version,
            "fullVersionList": self.full_version_list,
        }


def strip_hint_quotes(value: str | None) -> str | None:
    """Trim whitespace, then drop one leading and one trailing double quote.

    Embedded quotes are left alone, so ``"a"b"`` becomes ``a"b``.
    """
    if value is None:
        return None
    cleaned = value.strip()
    if cleaned.startswith('"'):
        cleaned = cleaned[1:]
    if cleaned.endswith('"'):
        cleaned = cleaned[:-1]
    return cleaned


def extract_client_hints(headers: Mapping[str, str]) -> ClientHintsSnapshot:
    """Build a snapshot from request headers. Header names match case-insensitively."""
    lowered = {name.lower(): value for name, value in headers.items()}

    return ClientHintsSnapshot(
        user_agent=lowered.get("sec-ch-ua") or lowered.get("user-agent") or None,
        mobile=lowered.get("sec-ch-ua-mobile") == "?1",
        platform=strip_hint_quotes(lowered.get("sec-ch-ua-platform")),
        platform_version=strip_hint_quotes(lowered.get("sec-ch-ua-platform-version")),
        arch=strip_hint_quotes(lowered.get("sec-ch-ua-arch")),
        model=strip_hint_quotes(lowered.get("sec-ch-ua-model")),
        full_version=strip_hint_quotes(lowered.get("sec-ch-ua-full-version")),
        full_version_list=lowered.get("sec-ch-ua-full-version-list") or None,
    )


def negotiation_headers(*, critical: bool = False) -> dict[str, str]:
    headers = {
        "Accept-CH": ACCEPT_CH,
        "Permissions-Policy": PERMISSIONS_POLICY,
    }
    if critical:
        headers["Critical-CH"] = CRITICAL_CH
    return headers
