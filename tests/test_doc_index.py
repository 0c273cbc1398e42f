from __future__ import annotations

from types import SimpleNamespace

import pytest

from assistant.config.settings import settings
from assistant.services.doc_index import DocumentIndex, fold


README = """Preamble line that belongs to no section.
# Introducción
Cada nivel es una red.

## Controles
- WASD para moverse
- H para pedir una pista

## Consejos
Lee el objetivo.
Second line.
# Mapa de navegación
Verde = visitado
"""

TOPIC = """# Port Scanner
## Objetivo
Find open ports
before time runs out
## Controles
Click a port.
## Consejos útiles
- Start with 22, 80, 443
not a bullet
- Filtered is not closed
### Sub header
- ignored bullet
## Mecánica
- Each scan costs one second
## Historia
Ignored text
"""


@pytest.fixture
def index():
    return DocumentIndex()


def test_find_section_empty_when_nothing_loaded(index):
    assert index.find_section("controls") == ""
    assert index.keyword_section("controls") == ""


def test_parse_primary_document_sections(index):
    sections = index.parse_primary_document(README)

    assert list(sections) == ["introducción", "controles", "consejos", "mapa de navegación"]
    assert sections["controles"] == "- WASD para moverse\n- H para pedir una pista"
    assert sections["consejos"] == "Lee el objetivo.\nSecond line."
    assert sections["mapa de navegación"] == "Verde = visitado"
    assert "Preamble" not in "".join(sections.values())


def test_find_section_exact_then_substring(index):
    index.parse_primary_document(README)

    assert index.find_section("CONTROLES").startswith("- WASD")
    assert index.find_section("mapa") == "Verde = visitado"
    assert index.find_section("missing") == ""


def test_find_section_first_match_wins(index):
    index.parse_primary_document("# tips one\nfirst\n# tips two\nsecond\n")
    assert index.find_section("tips") == "first"


def test_duplicate_headers_last_write_wins(index):
    sections = index.parse_primary_document("# Controles\nold\n# Controles\nnew\n")
    assert sections == {"controles": "new"}


def test_keyword_index_rebuilt_on_each_load(index):
    index.parse_primary_document(README)
    keywords = index.keyword_index()
    assert keywords["controls"] == ["controles"]
    assert keywords["tips"] == ["consejos"]
    assert keywords["navigation"] == ["mapa de navegación"]
    assert keywords["tutorial"] == ["introducción"]
    assert keywords["scoring"] == []

    index.parse_primary_document("# Scoring rules\nPoints.\n")
    keywords = index.keyword_index()
    assert keywords["controls"] == []
    assert keywords["scoring"] == ["scoring rules"]
    assert index.find_section("controles") == ""


def test_keyword_section_uses_index(index):
    index.parse_primary_document(README)
    assert index.sections_for("navigation") == ["mapa de navegación"]
    assert index.sections_for("nonsense") == []
    assert index.keyword_section("controls").startswith("- WASD")
    assert index.keyword_section("tips") == "Lee el objetivo.\nSecond line."


def test_parse_topic_document(index):
    doc = index.parse_topic_document("port_scanner", TOPIC)

    assert doc.objective == "Find open ports\nbefore time runs out"
    assert doc.controls == "Click a port."
    assert doc.tips == ["Start with 22, 80, 443", "Filtered is not closed"]
    assert doc.mechanics == ["Each scan costs one second"]
    assert index.get_topic("port_scanner") == doc


def test_topic_marker_order_first_match_wins(index):
    # "objective" is checked before "tip", so this header is an objective
    doc = index.parse_topic_document("t", "## Objective and tips\nReach the end\n")
    assert doc.objective == "Reach the end"
    assert doc.tips == []


def test_topics_are_independent(index):
    index.parse_topic_document("a", "## Objective\nA goal\n")
    index.parse_topic_document("b", "## Objective\nB goal\n")
    assert index.get_topic("a").objective == "A goal"
    assert index.get_topic("b").objective == "B goal"
    assert index.get_topic("c") is None
    assert index.topics() == ["a", "b"]


def test_missing_primary_file_keeps_previous_content(index, tmp_path):
    index.parse_primary_document(README)

    assert index.load_primary_document(tmp_path / "nope.md") is False
    assert index.find_section("controles").startswith("- WASD")


def test_missing_topic_file_is_non_fatal(index, tmp_path):
    assert index.load_topic_document("ghost", tmp_path / "ghost.md") is False
    assert index.get_topic("ghost") is None


def test_load_from_files(index, tmp_path):
    readme = tmp_path / "README.md"
    readme.write_text(README, encoding="utf-8")
    topic = tmp_path / "port_scanner.md"
    topic.write_text(TOPIC, encoding="utf-8")

    assert index.load_primary_document(readme) is True
    assert index.load_topic_document("port_scanner", topic) is True
    assert index.get_topic("port_scanner").objective.startswith("Find open ports")


def test_load_with_stub_reader():
    reader = SimpleNamespace(read_text=lambda path: "# Controls\nUse the mouse.\n")
    index = DocumentIndex(reader=reader)

    assert index.load_primary_document("whatever") is True
    assert index.find_section("controls") == "Use the mouse."


def test_load_topic_directory_bundled_docs(index):
    loaded = index.load_topic_directory(settings.TOPICS_DIR)

    assert loaded >= 2
    assert "port_scanner" in index.topics()
    assert "puertos abiertos" in index.get_topic("port_scanner").objective
    assert index.get_topic("password_cracker").mechanics == ["You have six attempts."]


def test_load_topic_directory_missing(index, tmp_path):
    assert index.load_topic_directory(tmp_path / "none") == 0


def test_fold_strips_accents():
    assert fold("Mecánica") == "mecanica"
    assert fold("NAVEGACIÓN") == "navegacion"


def test_find_section_blank_keyword_matches_nothing(index):
    index.parse_primary_document(README)
    assert index.find_section("") == ""
    assert index.find_section("   ") == ""


def test_topic_text_keeps_inner_blank_lines(index):
    doc = index.parse_topic_document(
        "t",
        "## Objective\n\nFirst paragraph.\n\nSecond paragraph.\n\n## Controls\nMouse.\n\nKeyboard.\n\n## Tips\n- one\n\n- two\n",
    )
    assert doc.objective == "First paragraph.\n\nSecond paragraph."
    assert doc.controls == "Mouse.\n\nKeyboard."
    assert doc.tips == ["one", "two"]
