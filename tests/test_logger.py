import imgpreview.logger as logger


def test_truncate_line_marks_truncated():
    out = logger.truncate_line("x" * 50, max_chars=10)
    assert "truncated" in out
    assert len(out) <= 50


def test_truncate_line_keeps_short_text():
    assert logger.truncate_line("short", max_chars=10) == "short"


def test_progress_always_writes_stdout(capsys):
    logger.progress("[ImgPreview] hello")
    assert "[ImgPreview] hello" in capsys.readouterr().out


def test_debug_ctx_is_noop_without_debug(monkeypatch, capsys):
    monkeypatch.setattr(logger, "is_debug_mode", lambda: False)
    logger.debug_ctx("rating", "hidden")
    assert "hidden" not in capsys.readouterr().out


def test_debug_ctx_in_silent_debug_goes_to_progress(monkeypatch, capsys):
    monkeypatch.setattr(logger, "is_debug_mode", lambda: True)
    monkeypatch.setattr(logger, "is_silent_mode", lambda: True)
    logger.debug_ctx("rating", "visible")
    assert "[RATING][DEBUG] visible" in capsys.readouterr().out
