import io
import json
import sys

import pytest

from cli.__main__ import main

GLOSSARY = "XPT\n: SAS Transport file format.\n"


def _chapter(path, content):
    return {
        "Chapter": {
            "name": path,
            "content": content,
            "number": None,
            "sub_items": [],
            "path": path,
            "source_path": path,
            "parent_names": [],
        }
    }


def _stdin_payload(preprocessor_config=None, chapters=None):
    ctx = {
        "root": "/book",
        "config": {"book": {"title": "Test"}, "preprocessor": {}},
        "renderer": "html",
        "mdbook_version": "0.4.40",
    }
    if preprocessor_config is not None:
        ctx["config"]["preprocessor"]["termlink"] = preprocessor_config
    if chapters is None:
        chapters = [
            _chapter("reference/glossary.md", GLOSSARY),
            _chapter("intro.md", "XPT files, more XPT files.\n"),
        ]
    return json.dumps([ctx, {"sections": chapters, "__non_exhaustive": None}])


@pytest.mark.parametrize("renderer, expected", [("html", 0), ("pdf", 1), ("markdown", 1)])
def test_supports(renderer, expected):
    assert main(["supports", renderer]) == expected


def test_preprocessor_reads_stdin_and_writes_book(monkeypatch, capsys):
    monkeypatch.setattr(sys, "stdin", io.StringIO(_stdin_payload({"link-first-only": False})))
    assert main([]) == 0

    book = json.loads(capsys.readouterr().out)
    glossary, intro = (item["Chapter"] for item in book["sections"])
    assert glossary["content"] == GLOSSARY
    assert intro["content"].count('<a href="reference/glossary.html#xpt"') == 2
    assert book["__non_exhaustive"] is None


def test_preprocessor_missing_glossary_fails(monkeypatch, capsys):
    payload = _stdin_payload(chapters=[_chapter("intro.md", "XPT.\n")])
    monkeypatch.setattr(sys, "stdin", io.StringIO(payload))
    assert main([]) == 1
    assert capsys.readouterr().out == ""


def test_preprocessor_rejects_garbage_input(monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.StringIO("not json"))
    assert main([]) == 1


def test_glossary_command_lists_terms(tmp_path, capsys):
    glossary = tmp_path / "glossary.md"
    glossary.write_text(
        "API (Application Programming Interface)\n: Software interface.\n\nXPT\n: SAS Transport file format.\n",
        encoding="utf-8",
    )
    config = tmp_path / "termlink.yaml"
    config.write_text("aliases:\n  XPT: [transport file]\n", encoding="utf-8")

    assert main(["glossary", str(glossary), "--config", str(config)]) == 0
    terms = json.loads(capsys.readouterr().out)
    assert terms == [
        {
            "name": "API (Application Programming Interface)",
            "anchor": "api-application-programming-interface",
            "short_name": "API",
            "definition": "Software interface.",
            "aliases": [],
        },
        {
            "name": "XPT",
            "anchor": "xpt",
            "short_name": None,
            "definition": "SAS Transport file format.",
            "aliases": ["transport file"],
        },
    ]


def _write_book(root):
    (root / "reference").mkdir(parents=True)
    (root / "reference" / "glossary.md").write_text(GLOSSARY, encoding="utf-8")
    (root / "intro.md").write_text("Store it as XPT.\n", encoding="utf-8")
    (root / "plain.md").write_text("Nothing to see.\n", encoding="utf-8")


def test_link_command_in_place(tmp_path, capsys):
    src = tmp_path / "src"
    _write_book(src)

    assert main(["link", str(src)]) == 0
    report = json.loads(capsys.readouterr().out)
    assert report["linked"] == ["intro.md"]
    assert report["unchanged"] == ["plain.md"]
    assert report["skipped"] == ["reference/glossary.md"]
    assert 'href="reference/glossary.html#xpt"' in (src / "intro.md").read_text(encoding="utf-8")
    assert (src / "plain.md").read_text(encoding="utf-8") == "Nothing to see.\n"


def test_link_command_to_output_directory(tmp_path, capsys):
    src = tmp_path / "src"
    out = tmp_path / "out"
    _write_book(src)
    config = tmp_path / "termlink.yaml"
    config.write_text("termlink:\n  css-class: term\n", encoding="utf-8")

    assert main(["link", str(src), "--out", str(out), "--config", str(config)]) == 0
    capsys.readouterr()
    assert (src / "intro.md").read_text(encoding="utf-8") == "Store it as XPT.\n"
    assert 'class="term"' in (out / "intro.md").read_text(encoding="utf-8")
    assert (out / "plain.md").read_text(encoding="utf-8") == "Nothing to see.\n"
    assert (out / "reference" / "glossary.md").read_text(encoding="utf-8") == GLOSSARY


def test_link_command_bad_config_fails(tmp_path):
    src = tmp_path / "src"
    _write_book(src)
    config = tmp_path / "termlink.yaml"
    config.write_text("link-first-only: maybe\n", encoding="utf-8")
    assert main(["link", str(src), "--config", str(config)]) == 1


def test_link_command_missing_source_fails(tmp_path, caplog):
    assert main(["link", str(tmp_path / "missing")]) == 1
    assert "Source directory not found" in caplog.text
