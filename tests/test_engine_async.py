"""
Async entry point tests for the engine and the parser
"""

import pytest

from scriptlet.lib.errors import ErrorKind
from scriptlet.lib.parser import ScriptParser
from scriptlet.lib.partials import DictReader


class TestEngineAsync:
    """Test awaited snippets and methods"""

    @pytest.mark.asyncio
    async def test_execute_code_async(self, engine):
        result = await engine.execute_code_async("await asyncio.sleep(0)\nreturn @0 * 2", 21)

        assert result == 42

    @pytest.mark.asyncio
    async def test_evaluate_async(self, engine):
        assert await engine.evaluate_async("await asyncio.sleep(0, result=@0)", 7) == 7

    @pytest.mark.asyncio
    async def test_execute_method_async_awaits_coroutine(self, engine):
        code = "async def fetch(self, value):\n    return value + 1"

        assert await engine.execute_method_async(code, "fetch", 1) == 2

    @pytest.mark.asyncio
    async def test_execute_method_async_with_sync_method(self, engine):
        """Plain results are returned as they are"""
        assert await engine.execute_method_async("def a(self):\n    return 'a'", "a") == "a"

    @pytest.mark.asyncio
    async def test_async_runtime_error(self, engine):
        assert await engine.evaluate_async("@0 / 0", 1) is None
        assert engine.error_type == ErrorKind.RUNTIME

    @pytest.mark.asyncio
    async def test_async_throw_exceptions(self, engine):
        engine.throw_exceptions = True

        with pytest.raises(ZeroDivisionError):
            await engine.evaluate_async("@0 / 0", 1)

    @pytest.mark.asyncio
    async def test_sync_and_async_artifacts_differ(self, engine, cache):
        """The same statements compiled as sync and async are two artifacts"""
        assert engine.execute_code("return 1") == 1
        assert await engine.execute_code_async("return 1") == 1

        assert len(cache) == 2


class TestParserAsync:
    """Test async template renders"""

    @pytest.mark.asyncio
    async def test_execute_script_async(self, parser):
        result = await parser.execute_script_async("{{% await asyncio.sleep(0) %}}{{ Model }}", "x")

        assert result == "x"

    @pytest.mark.asyncio
    async def test_await_in_expression(self, parser):
        result = await parser.execute_script_async("[{{ await asyncio.sleep(0, result=Model) }}]", 3)

        assert result == "[3]"

    def test_await_in_sync_render(self, parser):
        """Sync renders cannot await"""
        assert parser.execute_script("{{ await asyncio.sleep(0) }}") is None
        assert parser.error_type == ErrorKind.COMPILE

    @pytest.mark.asyncio
    async def test_async_file_with_async_partial(self, engine, site):
        site["/site/async_nav.html"] = "A{{ await Script.render_partial_async('nav.html', 'M') }}B"
        parser = ScriptParser(engine=engine, reader=DictReader(site))

        assert await parser.execute_script_file_async("/site/async_nav.html") == "A<nav>M</nav>B"

    @pytest.mark.asyncio
    async def test_async_render_script(self, parser):
        template = (
            "{{% inner = '(' + '{' + '{ Model }' + '})' %}}"
            "{{ await Script.render_script_async(inner, 'in') }}"
        )

        assert await parser.execute_script_async(template) == "(in)"

    @pytest.mark.asyncio
    async def test_async_missing_partial(self, site_parser):
        result = await site_parser.execute_script_async(
            "{{ await Script.render_partial_async('gone.html') }}", base_path="/site"
        )

        assert result is None
        assert site_parser.error_type == ErrorKind.RESOLUTION
        assert "/site/gone.html" in site_parser.error_message
