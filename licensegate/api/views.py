"""Static pages shown when the license restricts access."""
from html import escape

_PAGES = {
    "expired": {
        "title": "License expired",
        "heading": "Your license has expired",
        "body": (
            "The system is in read-only mode. You can still view your data, "
            "but changes are disabled until the license is renewed."
        ),
        "accent": "#b7791f",
    },
    "suspended": {
        "title": "License suspended",
        "heading": "Your license has been suspended",
        "body": "Access to the system is blocked until the license is reinstated.",
        "accent": "#c53030",
    },
}

_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{title}</title>
<style>
body {{ font-family: system-ui, sans-serif; background: #f7fafc; margin: 0; }}
main {{ max-width: 32rem; margin: 10vh auto; background: #fff; padding: 2rem;
        border-top: 4px solid {accent}; border-radius: 6px; }}
h1 {{ color: {accent}; font-size: 1.4rem; }}
</style>
</head>
<body>
<main>
<h1>{heading}</h1>
<p>{body}</p>
<p>Please contact support: <a href="mailto:{contact}">{contact}</a></p>
<p><small>Status: {status}</small></p>
</main>
</body>
</html>
"""


def render_view(view: str, status: str, support_contact: str) -> str:
    """
    Render the "expired" or "suspended" page.

    Unknown view names fall back to a minimal error page.
    """
    page = _PAGES.get(view)
    if page is None:
        return f"<h1>License Error</h1><p>Status: {escape(status)}</p>"
    return _TEMPLATE.format(
        title=page["title"],
        heading=page["heading"],
        body=page["body"],
        accent=page["accent"],
        contact=escape(support_contact),
        status=escape(status),
    )
