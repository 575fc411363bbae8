"""
Email templates for DevWars game applications.

All templates use inline CSS for email client compatibility.
Each template function returns (subject, html_body, text_body).
"""

from __future__ import annotations

from html import escape

BG_DARK = "#1B1C24"
BG_CARD = "#252630"
ACCENT = "#38A1F3"
TEXT_PRIMARY = "#F0F6FC"
TEXT_SECONDARY = "#A0A4B8"
BORDER = "#33354A"


def _base_layout(content: str, app_name: str = "DevWars") -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{app_name}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_DARK}; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: {BG_DARK};">
        <tr>
            <td align="center" style="padding: 40px 20px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="600" style="max-width: 600px; width: 100%;">
                    <tr>
                        <td align="center" style="padding-bottom: 32px;">
                            <span style="font-size: 22px; font-weight: 700; color: {ACCENT};">{app_name}</span>
                        </td>
                    </tr>
                    <tr>
                        <td style="background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 8px; padding: 40px 32px;">
                            {content}
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding-top: 32px;">
                            <p style="color: {TEXT_SECONDARY}; font-size: 12px; line-height: 1.5; margin: 0;">
                                You are receiving this because you applied to a game on {app_name}.
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def _paragraph(text: str) -> str:
    return f'<p style="color: {TEXT_PRIMARY}; font-size: 15px; line-height: 1.6; margin: 0 0 16px;">{text}</p>'


def game_application(username: str, game_time: str, game_mode: str, games_url: str) -> tuple[str, str, str]:
    """Confirmation sent when a user applies to a game."""
    subject = "DevWars Game Application"
    name = escape(username)
    content = "".join([
        _paragraph(f"Hey {name},"),
        _paragraph(
            f"Thanks for applying to the <strong>{escape(game_mode)}</strong> game on "
            f"<strong>{escape(game_time)}</strong>."
        ),
        _paragraph("A moderator will pick the teams before the game starts. Keep an eye on your inbox."),
        f'<a href="{escape(games_url)}" style="color: {ACCENT};">View upcoming games</a>',
    ])
    text = (
        f"Hey {username},\n\n"
        f"Thanks for applying to the {game_mode} game on {game_time}.\n"
        "A moderator will pick the teams before the game starts.\n\n"
        f"Upcoming games: {games_url}\n"
    )
    return subject, _base_layout(content), text


def game_application_resign(username: str, game_time: str, game_mode: str, games_url: str) -> tuple[str, str, str]:
    """Confirmation sent when a user withdraws an application."""
    subject = "DevWars Game Application Update (Resign)"
    name = escape(username)
    content = "".join([
        _paragraph(f"Hey {name},"),
        _paragraph(
            f"You have resigned from the <strong>{escape(game_mode)}</strong> game on "
            f"<strong>{escape(game_time)}</strong>."
        ),
        _paragraph("You can apply again at any time before the teams are picked."),
        f'<a href="{escape(games_url)}" style="color: {ACCENT};">View upcoming games</a>',
    ])
    text = (
        f"Hey {username},\n\n"
        f"You have resigned from the {game_mode} game on {game_time}.\n"
        "You can apply again at any time before the teams are picked.\n\n"
        f"Upcoming games: {games_url}\n"
    )
    return subject, _base_layout(content), text
