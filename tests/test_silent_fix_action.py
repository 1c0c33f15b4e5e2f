"""Tests for the single-press silent fix flow."""

import pytest

from fixmytex.chains.silent_fix import SILENT_FIX_SYSTEM_PROMPT, fix_text_silent
from fixmytex.core.errors import ParseError, ProviderError
from fixmytex.services.silent_fix_action import SilentFixAction
from tests.fakes.fake_desktop import FakeDesktop, FakeRichSupport
from tests.fakes.fake_llm import GRAMMAR, FakeChatProvider


def make_action(desktop, provider, rich=None):
    return SilentFixAction(provider, desktop, desktop, rich or FakeRichSupport(), settle_delay_ms=0)


@pytest.mark.asyncio
async def test_corrected_text_is_written_and_pasted():
    desktop = FakeDesktop(selection="teh quick brown fox", focused_app="notepad.exe")
    provider = FakeChatProvider({GRAMMAR: "  The quick brown fox.\n"})

    await make_action(desktop, provider).execute()

    assert desktop.copies == 1
    assert desktop.writes == [("text", "The quick brown fox.")]
    assert desktop.pastes == [None]
    assert provider.calls == [(SILENT_FIX_SYSTEM_PROMPT, "teh quick brown fox")]


@pytest.mark.asyncio
async def test_empty_clipboard_is_a_no_op():
    desktop = FakeDesktop(selection="")
    provider = FakeChatProvider({GRAMMAR: "should not be used"})

    await make_action(desktop, provider).execute()

    assert provider.calls == []
    assert desktop.writes == []
    assert desktop.pastes == []


@pytest.mark.asyncio
async def test_whitespace_selection_is_a_no_op():
    desktop = FakeDesktop(selection="   \n\t")
    provider = FakeChatProvider({GRAMMAR: "x"})

    await make_action(desktop, provider).execute()

    assert desktop.writes == []
    assert desktop.pastes == []


@pytest.mark.asyncio
async def test_provider_error_leaves_clipboard_untouched():
    desktop = FakeDesktop(selection="original text")
    provider = FakeChatProvider({GRAMMAR: ProviderError("rate limited", provider="openai")})

    await make_action(desktop, provider).execute()

    assert desktop.clipboard == "original text"
    assert desktop.writes == []
    assert desktop.pastes == []


@pytest.mark.asyncio
async def test_empty_model_output_leaves_clipboard_untouched():
    desktop = FakeDesktop(selection="original text")
    provider = FakeChatProvider({GRAMMAR: "   "})

    await make_action(desktop, provider).execute()

    assert desktop.clipboard == "original text"
    assert desktop.writes == []
    assert desktop.pastes == []


@pytest.mark.asyncio
async def test_rich_app_gets_html():
    desktop = FakeDesktop(selection="hi sara", focused_app="OUTLOOK.EXE - Inbox")
    provider = FakeChatProvider({GRAMMAR: "Hi **Sara**"})

    await make_action(desktop, provider).execute()

    assert desktop.writes == [("html", "<p>Hi **Sara**</p>")]
    assert desktop.clipboard == "Hi **Sara**"
    assert desktop.pastes == [None]


@pytest.mark.asyncio
async def test_conversion_failure_falls_back_to_plain():
    desktop = FakeDesktop(selection="hi sara", focused_app="outlook")
    provider = FakeChatProvider({GRAMMAR: "Hi Sara"})

    await make_action(desktop, provider, FakeRichSupport(fail_conversion=True)).execute()

    assert desktop.writes == [("text", "Hi Sara")]
    assert desktop.pastes == [None]


@pytest.mark.asyncio
async def test_clipboard_write_failure_does_not_raise_or_paste():
    desktop = FakeDesktop(selection="hi")
    desktop.fail_writes = True
    provider = FakeChatProvider({GRAMMAR: "Hi."})

    await make_action(desktop, provider).execute()

    assert desktop.pastes == []


@pytest.mark.asyncio
async def test_fix_text_silent_rejects_empty_output():
    provider = FakeChatProvider({GRAMMAR: "\n"})

    with pytest.raises(ParseError):
        await fix_text_silent(provider, "some text")
