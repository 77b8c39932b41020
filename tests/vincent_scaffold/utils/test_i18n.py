from vincent_scaffold.utils import i18n


def test_parse_po_handles_multiline_entries(tmp_path):
    po = tmp_path / "messages.po"
    po.write_text(
        'msgid ""\nmsgstr ""\n"Language: ko\\n"\n\n'
        '# comment\nmsgid "Hello"\nmsgstr "안녕"\n\n'
        'msgid "Long "\n"message"\nmsgstr "긴 "\n"메시지"\n\n'
        'msgid "Untranslated"\nmsgstr ""\n',
        encoding="utf-8",
    )
    catalog = i18n.parse_po(po)
    assert catalog["Hello"] == "안녕"
    assert catalog["Long message"] == "긴 메시지"
    assert "" not in catalog


def test_korean_catalog_is_used():
    i18n.set_language("ko")
    assert i18n.current_language() == "ko"
    assert i18n._("Error: {}") == "오류: {}"
    assert i18n._("Not in the catalog") == "Not in the catalog"


def test_unknown_language_falls_back_to_english():
    i18n.set_language("xx")
    assert i18n._("Error: {}") == "Error: {}"


def test_detect_language_priority(monkeypatch):
    for key in ("VINCENT_LANG", "LANGUAGE", "LC_ALL", "LC_MESSAGES", "LANG"):
        monkeypatch.delenv(key, raising=False)
    assert i18n.detect_language() == "en"

    monkeypatch.setenv("LANG", "ko_KR.UTF-8")
    assert i18n.detect_language() == "ko"

    monkeypatch.setenv("VINCENT_LANG", "en-US")
    assert i18n.detect_language() == "en"
