"""Tests for the interactive CLI."""

from unittest.mock import AsyncMock, Mock

import pytest

from mcp_orchestrator.errors import InferenceServiceError
from mcp_orchestrator.interactive import InteractiveCLI, ainput


def scripted_input(*lines):
    """An input function that replays lines, then raises EOFError."""
    remaining = list(lines)
    prompts = []

    def _input(prompt):
        prompts.append(prompt)
        if not remaining:
            raise EOFError
        return remaining.pop(0)

    _input.prompts = prompts
    return _input


@pytest.fixture
def orchestrator(catalog):
    mock_orchestrator = Mock(catalog=catalog)
    mock_orchestrator.process_query = AsyncMock(return_value="Sunny.")
    return mock_orchestrator


class TestAinput:
    @pytest.mark.asyncio
    async def test_returns_line(self):
        assert await ainput("> ", scripted_input("hello")) == "hello"

    @pytest.mark.asyncio
    async def test_propagates_eof(self):
        with pytest.raises(EOFError):
            await ainput("> ", scripted_input())


class TestInteractiveCLI:
    @pytest.mark.asyncio
    async def test_banner_and_response(self, orchestrator, capsys):
        cli = InteractiveCLI(orchestrator, session_id="abc", input_func=scripted_input("Weather?", "quit"))

        await cli.run()

        out = capsys.readouterr().out
        assert "MCP Client Started!" in out
        assert "- get_weather: Get the current weather for a city" in out
        assert "Type your queries or 'quit' to exit." in out
        assert "\nSunny." in out
        orchestrator.process_query.assert_awaited_once_with("abc", "Weather?")

    @pytest.mark.asyncio
    async def test_quit_is_case_insensitive(self, orchestrator):
        input_func = scripted_input("  QUIT  ", "never read")
        cli = InteractiveCLI(orchestrator, session_id="abc", input_func=input_func)

        await cli.run()

        orchestrator.process_query.assert_not_awaited()
        assert input_func.prompts == ["\nQuery: "]

    @pytest.mark.asyncio
    async def test_empty_lines_are_skipped(self, orchestrator):
        cli = InteractiveCLI(orchestrator, session_id="abc", input_func=scripted_input("", "   ", "hi"))

        await cli.run()

        orchestrator.process_query.assert_awaited_once_with("abc", "hi")

    @pytest.mark.asyncio
    async def test_all_queries_share_one_session(self, orchestrator):
        cli = InteractiveCLI(orchestrator, session_id="abc", input_func=scripted_input("one", "two"))

        await cli.run()

        assert [c.args[0] for c in orchestrator.process_query.await_args_list] == ["abc", "abc"]

    @pytest.mark.asyncio
    async def test_error_is_printed_and_loop_continues(self, orchestrator, capsys):
        orchestrator.process_query.side_effect = [InferenceServiceError("overloaded"), "Recovered."]
        cli = InteractiveCLI(orchestrator, session_id="abc", input_func=scripted_input("a", "b"))

        await cli.run()

        out = capsys.readouterr().out
        assert "\nError: overloaded" in out
        assert "\nRecovered." in out

    def test_default_session_id(self, orchestrator):
        from mcp_orchestrator.config import config

        cli = InteractiveCLI(orchestrator)
        assert cli.session_id == config.sessions.cli_session_id
