from bs4 import BeautifulSoup

from plex_dl.web.injector import (
    BUTTON_ID,
    build_activation_button,
    companion_onclick,
    inject_download_button,
    inject_into_html,
    locate_injection_point,
)


def _doc(body):
    return BeautifulSoup(f"<html><head></head><body>{body}</body></html>", "html.parser")


def test_injection_point_prefers_play_button_parent():
    doc = _doc(
        '<header id="h"></header><div class="details"></div>'
        '<div id="controls"><button aria-label="Play">Play</button></div>'
    )
    assert locate_injection_point(doc)["id"] == "controls"


def test_injection_point_accepts_spanish_play_label():
    doc = _doc('<div id="ctl"><button aria-label="Reproducir">▶</button></div>')
    assert locate_injection_point(doc)["id"] == "ctl"


def test_injection_point_falls_back_in_order():
    doc = _doc('<header id="h"></header><div class="details" id="d"></div>')
    assert locate_injection_point(doc)["id"] == "d"

    doc = _doc('<header id="h"></header>')
    assert locate_injection_point(doc)["id"] == "h"

    doc = _doc("<p>nothing here</p>")
    assert locate_injection_point(doc).name == "body"


def test_activation_button_style_and_label():
    button = build_activation_button(_doc(""))

    assert button.name == "button"
    assert button.get_text() == "Descargar"
    assert "background: #e5a00d" in button["style"]
    assert "border-radius: 6px" in button["style"]
    assert "padding: 10px 18px" in button["style"]


def test_button_injected_exactly_once():
    doc = _doc('<div id="controls"><button aria-label="Play">Play</button></div>')

    assert inject_download_button(doc, on_click="run()") is True
    assert inject_download_button(doc, on_click="run()") is False

    buttons = doc.find_all(id=BUTTON_ID)
    assert len(buttons) == 1
    assert buttons[0].parent["id"] == "controls"
    assert buttons[0]["onclick"] == "run()"


def test_inject_into_html_twice_keeps_one_button():
    html, injected = inject_into_html(
        "<html><body><header></header></body></html>", "http://127.0.0.1:32600/"
    )
    assert injected

    html_again, injected_again = inject_into_html(html, "http://127.0.0.1:32600")
    assert not injected_again
    assert html_again.count(BUTTON_ID) == 1


def test_companion_onclick_posts_page_and_token():
    script = companion_onclick("http://127.0.0.1:32600/")

    assert 'fetch("http://127.0.0.1:32600/download",' in script
    assert "location.href" in script
    assert "localStorage.myPlexAccessToken" in script
    assert "alert(d.message)" in script


def test_companion_onclick_quotes_endpoint_as_js_string():
    script = companion_onclick("http://localhost:32600/it's")

    assert script.startswith('fetch("http://localhost:32600/it\'s/download",')


def test_inject_into_html_escapes_onclick_attribute():
    html, _ = inject_into_html("<html><body></body></html>", "http://127.0.0.1:32600")

    soup = BeautifulSoup(html, "html.parser")
    onclick = soup.select_one(f"#{BUTTON_ID}")["onclick"]
    assert onclick == companion_onclick("http://127.0.0.1:32600")
