"""
HTML pages and static assets.

Presentation only: the router hands these templates a list of object
keys and the configured token, nothing else. Templates are rendered with
Jinja2 autoescaping because object keys are arbitrary user input.
"""

from typing import Iterable, Optional
from urllib.parse import quote

from jinja2 import Environment, select_autoescape

_env = Environment(
    autoescape=select_autoescape(default_for_string=True),
    trim_blocks=True,
    lstrip_blocks=True,
)


def key_path(key: str) -> str:
    """
    Percent-encode an object key for use right after the "/" of a link.

    Inner slashes stay readable. A leading slash is encoded so the link
    never starts with "//", which browsers read as another host.
    """
    quoted = quote(key, safe="/")
    if quoted.startswith("/"):
        quoted = "%2F" + quoted[1:]
    return quoted


_env.filters["key_path"] = key_path

FAVICON_MEDIA_TYPE = "image/svg+xml"

FAVICON_SVG = """<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 64 64">
  <rect x="6" y="14" width="52" height="40" rx="6" fill="#2563eb"/>
  <path d="M6 20a6 6 0 0 1 6-6h14l6 6h20a6 6 0 0 1 6 6v2H6z" fill="#1e40af"/>
  <path d="M32 28v16m-7-7 7 7 7-7" stroke="#fff" stroke-width="4" fill="none" stroke-linecap="round"/>
</svg>
"""

_BASE_STYLE = """
    body {
      font-family: 'Segoe UI', Arial, sans-serif;
      background: #f4f6fb;
      margin: 0;
    }
    .container {
      max-width: 480px;
      margin: 3rem auto 2rem auto;
      background: #fff;
      border-radius: 12px;
      box-shadow: 0 2px 16px rgba(0,0,0,0.08);
      padding: 2.5rem 2rem;
    }
    h1 { margin-top: 0; color: #2563eb; text-align: center; }
    input[type="file"], input[type="text"] {
      padding: 0.5rem;
      border: 1px solid #ccc;
      border-radius: 5px;
      font-size: 1rem;
    }
    button {
      padding: 0.6rem 1.5rem;
      background: #2563eb;
      color: #fff;
      border: none;
      border-radius: 5px;
      font-size: 1rem;
      cursor: pointer;
    }
    button:hover { background: #1e40af; }
"""

TOKEN_PROMPT_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <title>Token Verification</title>
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <link rel="icon" href="/favicon.svg" type="image/svg+xml">
    <style>{{ style | safe }}</style>
  </head>
  <body>
    <div class="container" style="text-align:center;">
      <h1>Enter Token</h1>
      <form method="GET" action="/">
        <input type="text" name="token" placeholder="Token" required>
        <br><br>
        <button type="submit">Verify</button>
      </form>
    </div>
  </body>
</html>
"""

INDEX_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <title>{{ title }}</title>
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <link rel="icon" href="/favicon.svg" type="image/svg+xml">
    <style>
      {{ style | safe }}
      .upload-form { display: flex; flex-direction: column; gap: 0.75rem; margin-bottom: 2rem; }
      ul { list-style: none; padding: 0; margin: 0; }
      li { background: #f4f6fb; margin-bottom: 0.5rem; padding: 0.5rem 2.5em 0.5rem 1rem; border-radius: 6px; position: relative; }
      li.empty { color: #888; }
      a { color: #2563eb; text-decoration: none; }
      .delete-form { position: absolute; right: 0.5em; top: 50%; transform: translateY(-50%); margin: 0; }
      .delete-btn { background: none; color: #ef4444; padding: 0; font-size: 1.4em; line-height: 1; }
      .delete-btn:hover { background: none; color: #b91c1c; }
    </style>
  </head>
  <body>
    <div class="container">
      <h1>{{ title }}</h1>
      <form method="post" action="/" enctype="multipart/form-data" class="upload-form">
        <input type="file" name="file" required>
        {% if token %}
        <input type="hidden" name="token" value="{{ token }}">
        {% endif %}
        <button type="submit">Upload</button>
      </form>
      <h2>Stored Files</h2>
      <ul>
        {% for key in keys %}
        <li class="file-item" data-key="{{ key }}">
          <a href="/{{ key | key_path }}{% if token %}?token={{ token | urlencode }}{% endif %}" target="_blank">{{ key }}</a>
          <form method="post" action="/" class="delete-form" onsubmit="return confirm('Delete this file?');">
            <input type="hidden" name="action" value="delete">
            <input type="hidden" name="key" value="{{ key }}">
            {% if token %}
            <input type="hidden" name="token" value="{{ token }}">
            {% endif %}
            <button type="submit" class="delete-btn" title="Delete {{ key }}">&times;</button>
          </form>
        </li>
        {% else %}
        <li class="empty">No files uploaded yet.</li>
        {% endfor %}
      </ul>
    </div>
  </body>
</html>
"""


def render_token_prompt() -> str:
    """Standalone page asking for the access token."""
    return _env.from_string(TOKEN_PROMPT_TEMPLATE).render(style=_BASE_STYLE)


def render_index(
    keys: Iterable[str],
    token: Optional[str] = None,
    title: str = "R2 File Storage",
) -> str:
    """
    Listing page with an upload form and per-key download/delete controls.

    `token` is embedded into links and hidden form fields so the browser
    carries it on every follow-up request.
    """
    return _env.from_string(INDEX_TEMPLATE).render(
        keys=list(keys),
        token=token,
        title=title,
        style=_BASE_STYLE,
    )
