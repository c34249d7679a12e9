from ekko import clipboard as cb
from ekko.adapters.clipboard import ClipboardAdapter


def _setup_mocks(monkeypatch, returncode=0, missing=False):
    calls: list[dict] = []

    class _Process:
        def __init__(self, args, **kwargs):
            if missing:
                raise FileNotFoundError(args[0])
            self.args = args
            self.returncode = returncode
            calls.append({"args": args})

        def communicate(self, input=None, timeout=None):
            calls[-1]["input"] = input
            return None, None

    monkeypatch.setattr(cb, "IS_LINUX", True)
    monkeypatch.setattr(cb.subprocess, "Popen", _Process)
    return calls


def test_set_clipboard_pipes_text_to_xclip(monkeypatch):
    calls = _setup_mocks(monkeypatch)

    assert ClipboardAdapter().copy("Subject\n\nBody") is True
    assert calls == [{"args": ["xclip", "-selection", "clipboard"], "input": "Subject\n\nBody"}]


def test_set_clipboard_reports_xclip_failure(monkeypatch):
    _setup_mocks(monkeypatch, returncode=1)
    assert cb.set_clipboard("text") is False


def test_set_clipboard_without_xclip(monkeypatch):
    _setup_mocks(monkeypatch, missing=True)
    assert cb.set_clipboard("text") is False


def test_set_clipboard_ignores_empty_text(monkeypatch):
    calls = _setup_mocks(monkeypatch)
    assert cb.set_clipboard("") is False
    assert calls == []


def test_clipboard_unavailable_off_linux(monkeypatch):
    monkeypatch.setattr(cb, "IS_LINUX", False)
    assert cb.set_clipboard("text") is False
