"""Plain-text email templates."""

from __future__ import annotations

from dataclasses import dataclass

PLATFORM_NAME = "KinetoFlow"
DEFAULT_INVITER = "the KinetoFlow team"
DEFAULT_COMPANY = "KinetoFlow Platform"


@dataclass(frozen=True)
class RenderedEmail:
    to: str
    subject: str
    body: str


def _expiry_label(ttl_minutes: int) -> str:
    if ttl_minutes % 60 == 0:
        hours = ttl_minutes // 60
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    return f"{ttl_minutes} minutes"


def render_invitation(
    *,
    to: str,
    inviter_name: str | None,
    company_name: str | None,
    role_label: str,
    invitation_url: str,
    ttl_minutes: int,
) -> RenderedEmail:
    body = (
        "Hello,\n\n"
        f"{inviter_name or DEFAULT_INVITER} has invited you to join "
        f"{company_name or DEFAULT_COMPANY} on {PLATFORM_NAME} as a {role_label}.\n\n"
        "Open the link below to accept the invitation and set up your account:\n"
        f"{invitation_url}\n\n"
        f"The link expires in {_expiry_label(ttl_minutes)}. "
        "If you were not expecting this invitation you can ignore this email.\n\n"
        f"The {PLATFORM_NAME} Team\n"
    )
    return RenderedEmail(to=to, subject="You're Invited to Join KinetoFlow!", body=body)


def render_welcome(*, to: str, name: str, login_url: str) -> RenderedEmail:
    body = (
        f"Hello {name},\n\n"
        f"Your {PLATFORM_NAME} account is now active.\n\n"
        "Sign in with your email address and the password you just chose:\n"
        f"{login_url}\n\n"
        f"The {PLATFORM_NAME} Team\n"
    )
    return RenderedEmail(to=to, subject="Welcome to KinetoFlow!", body=body)


__all__ = ["RenderedEmail", "render_invitation", "render_welcome"]
