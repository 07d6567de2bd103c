"""
Adds the "Descargar" button to a Plex Web page document.
"""

import json
import logging
from typing import Optional

from bs4 import BeautifulSoup, Tag

log = logging.getLogger(__name__)

BUTTON_ID = "plex-dl-button"
BUTTON_LABEL = "Descargar"
LOADED_MARKER = "data-plex-dl-loaded"

BUTTON_STYLE = {
    "background": "#e5a00d",
    "color": "#111",
    "border": "none",
    "padding": "10px 18px",
    "border-radius": "6px",
    "font-size": "16px",
    "font-weight": "bold",
    "margin-left": "10px",
    "cursor": "pointer",
}

PLAY_BUTTON_SELECTOR = 'button[aria-label="Play"], button[aria-label="Reproducir"]'


def _root(document: BeautifulSoup) -> Tag:
    return document.find("html") or document


def locate_injection_point(document: BeautifulSoup) -> Tag:
    """
    Finds where the button goes: next to the Play button, else the details
    container, else the page header, else the body.
    """
    play_button = document.select_one(PLAY_BUTTON_SELECTOR)
    if play_button is not None and play_button.parent is not None:
        return play_button.parent

    for selector in (".details", "header"):
        container = document.select_one(selector)
        if container is not None:
            return container

    body = document.find("body")
    if body is None:
        body = document.new_tag("body")
        _root(document).append(body)
    return body


def build_activation_button(document: BeautifulSoup) -> Tag:
    """Creates the styled button. Wiring a click handler is up to the caller."""
    button = document.new_tag("button", attrs={"id": BUTTON_ID, "type": "button"})
    button["style"] = "; ".join(f"{k}: {v}" for k, v in BUTTON_STYLE.items())
    button.string = BUTTON_LABEL
    return button


def inject_download_button(
    document: BeautifulSoup, on_click: Optional[str] = None
) -> bool:
    """
    Inserts the button once per document.

    Returns:
        True if the button was added, False if the document already had it.
    """
    root = _root(document)
    if root.get(LOADED_MARKER) or document.find(id=BUTTON_ID):
        log.debug("Download button already present, skipping injection")
        return False
    root[LOADED_MARKER] = "true"

    container = locate_injection_point(document)
    button = build_activation_button(document)
    if on_click:
        button["onclick"] = on_click
    container.append(button)
    log.info(f"Download button injected into <{container.name}>")
    return True


def companion_onclick(endpoint: str) -> str:
    """
    Click handler that sends the page address and the Plex Web account token
    to the companion service and shows its answer.
    """
    target = json.dumps(endpoint.rstrip("/") + "/download")
    return (
        f"fetch({target},{{method:'POST',body:JSON.stringify("
        "{page_url:location.href,account_token:localStorage.myPlexAccessToken||''})})"
        ".then(function(r){return r.json()})"
        ".then(function(d){alert(d.message)})"
        ".catch(function(e){alert('Error: '+e.message);console.error(e)})"
    )


def inject_into_html(html: str, endpoint: str) -> tuple[str, bool]:
    """Parses an HTML page, injects the wired button and serializes it back."""
    document = BeautifulSoup(html, "html.parser")
    injected = inject_download_button(document, on_click=companion_onclick(endpoint))
    return str(document), injected
