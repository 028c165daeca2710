"""Pytest configuration and fixtures for scriptlet tests."""

import pytest

from scriptlet.lib.cache import MemoryArtifactCache
from scriptlet.lib.compiler import PythonCompiler
from scriptlet.lib.engine import ScriptEngine
from scriptlet.lib.parser import ScriptParser
from scriptlet.lib.partials import DictReader


class CountingCompiler(PythonCompiler):
    """Compiler that counts how often it is asked to compile"""

    def __init__(self) -> None:
        self.count = 0

    def compile(self, source, options):
        self.count += 1
        return super().compile(source, options)


@pytest.fixture
def cache():
    """Fresh artifact cache, isolated from the process-wide one."""
    return MemoryArtifactCache()


@pytest.fixture
def compiler():
    return CountingCompiler()


@pytest.fixture
def engine(cache, compiler):
    """Engine with its own cache and a counting compiler."""
    return ScriptEngine(cache=cache, compiler=compiler)


@pytest.fixture
def parser(engine):
    """Parser rendering through the isolated engine."""
    return ScriptParser(engine=engine)


@pytest.fixture
def site():
    """In-memory template tree rooted at /site."""
    return {
        "/site/_layout.html": (
            "<html><head><title>{{ Script.render_section(\"head\") }}{{ Script.title }}</title></head>"
            "<body>{{ Script.render_content() }}</body></html>"
        ),
        "/site/page.html": (
            "{{% Script.layout = \"_layout.html\" %}}\n"
            "{{ Script.section(\"head\") }}{{% Script.title = \"X\" %}}{{ Script.end_section(\"head\") }}\n"
            "<p>Body</p>"
        ),
        "/site/nav.html": "<nav>{{ Model }}</nav>",
        "/site/with_nav.html": "A{{ Script.render_partial(\"nav.html\", Model[\"menu\"]) }}B",
        "/site/broken_nav.html": "A{{ Script.render_partial(\"missing.html\") }}B",
    }


@pytest.fixture
def site_parser(engine, site):
    """Parser reading the in-memory /site tree."""
    return ScriptParser(engine=engine, reader=DictReader(site))
