import os

import pytest

from formpilot.main import FormPilotApp, parse_args


def feed_answers(monkeypatch, answers):
    answers = iter(answers)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))


async def test_session_exports_to_output(monkeypatch, tmp_path, text_pdf_path):
    feed_answers(monkeypatch, ["Jane Doe", "not an email", "jane@example.com"])
    output = tmp_path / "out" / "filled.pdf"
    app = FormPilotApp()

    saved = await app.start(text_pdf_path, str(output))

    assert saved == str(output)
    assert output.read_bytes().startswith(b"%PDF")
    assert os.path.exists(text_pdf_path)
    assert len(app.store) == 0


async def test_quit_disposes_session(monkeypatch, text_pdf_path):
    feed_answers(monkeypatch, ["quit"])
    app = FormPilotApp()

    assert await app.start(text_pdf_path) is None
    assert len(app.store) == 0
    assert os.path.exists(text_pdf_path)


async def test_end_of_input(monkeypatch, text_pdf_path):
    def closed(prompt=""):
        raise EOFError

    monkeypatch.setattr("builtins.input", closed)

    assert await FormPilotApp().start(text_pdf_path) is None


async def test_missing_file(tmp_path):
    assert await FormPilotApp().start(str(tmp_path / "nope.pdf")) is None


def test_parse_args():
    args = parse_args(["form.pdf", "-o", "out.pdf"])

    assert (args.file, args.output) == ("form.pdf", "out.pdf")
    assert parse_args(["form.pdf"]).output is None
