"""
Settings tests - defaults, environment overrides and derived values
"""

from scriptlet.config.settings import AppSettings
from scriptlet.lib.engine import ScriptEngine
from scriptlet.models.segments import DelimiterSet


class TestAppSettings:
    """Test AppSettings defaults and helpers"""

    def test_class_name(self):
        assert AppSettings().className_make("k3j9x0ab") == "ScriptClass_k3j9x0ab"

    def test_compile_mode(self):
        assert AppSettings().compileMode_make(False) == "sync:optimize=-1"
        assert AppSettings(compile_optimize=2).compileMode_make(True) == "async:optimize=2"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SCRIPTLET_THROW_EXCEPTIONS", "true")
        monkeypatch.setenv("SCRIPTLET_DEFAULT_NAMESPACES", '["json"]')

        settings = AppSettings()

        assert settings.throw_exceptions is True
        assert settings.default_namespaces == ["json"]

    def test_delimiters_from_settings(self):
        settings = AppSettings(code_start="<%", code_end="%>", html_encode_by_default=True)
        delimiters = DelimiterSet.from_settings(settings)

        assert delimiters.code_start == "<%"
        assert delimiters.code_end == "%>"
        assert delimiters.expression_start == "{{"
        assert delimiters.html_encode_expressions_by_default is True


class TestEngineSettings:
    """Test engines configured from settings"""

    def test_engine_uses_settings(self, cache):
        settings = AppSettings(default_namespaces=["json"], throw_exceptions=True, verbosity=3)
        engine = ScriptEngine(cache=cache, settings=settings)

        assert engine.namespaces == ["json"]
        assert engine.throw_exceptions is True
        assert engine.verbosity == 3
        assert engine.generated_class_name.startswith("ScriptClass_")

    def test_arguments_override_settings(self, cache):
        settings = AppSettings(throw_exceptions=True)
        engine = ScriptEngine(namespaces=["math"], cache=cache, throw_exceptions=False, settings=settings)

        assert engine.namespaces == ["math"]
        assert engine.throw_exceptions is False
