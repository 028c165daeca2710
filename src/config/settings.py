"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use SCRIPTLET_ prefix (e.g., SCRIPTLET_THROW_EXCEPTIONS=true).

Settings can also be loaded from a .env file in the project root.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use SCRIPTLET_ prefix. These values are defaults
    only: ScriptParser and ScriptEngine accept per-instance overrides.

    Examples:
        SCRIPTLET_HTML_ENCODE_BY_DEFAULT=true
        SCRIPTLET_THROW_EXCEPTIONS=true
        SCRIPTLET_OUTPUT_ARTIFACT=/tmp/generated_script.py
        SCRIPTLET_DEFAULT_NAMESPACES='["os", "json"]'
    """

    model_config = SettingsConfigDict(
        env_prefix="SCRIPTLET_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Delimiter configuration
    expression_start: str = Field(default="{{", description="Start of an expression")
    expression_end: str = Field(default="}}", description="End of any expression form")
    encoded_expression_start: str = Field(
        default="{{:", description="Start of an expression that is always HTML encoded"
    )
    raw_expression_start: str = Field(
        default="{{!", description="Start of an expression that is never HTML encoded"
    )
    code_start: str = Field(default="{{%", description="Start of a verbatim code block")
    code_end: str = Field(default="%}}", description="End of a verbatim code block")
    comment_start: str = Field(default="{{@", description="Start of a discarded comment")
    comment_end: str = Field(default="@}}", description="End of a discarded comment")

    html_encode_by_default: bool = Field(
        default=False,
        description="HTML encode plain {{ }} expressions unless {{! }} is used",
    )

    strip_code_block_newline: bool = Field(
        default=True,
        description="Drop a single line break directly following a code block",
    )

    # Composition configuration
    max_layout_depth: int = Field(
        default=16,
        description="Maximum number of chained Layout pages before resolution fails",
    )

    # Compilation configuration
    default_namespaces: List[str] = Field(
        default_factory=lambda: ["asyncio", "datetime", "json", "math", "os", "re"],
        description="Modules imported at the top of every generated module",
    )

    generated_namespace: str = Field(
        default="__script_execution",
        description="Module name prefix used for generated code",
    )

    compile_optimize: int = Field(
        default=-1,
        description="Optimization level handed to compile() (-1 uses the interpreter's)",
    )

    output_artifact: Optional[str] = Field(
        default=None,
        description="Directory generated modules are written to, one <module>.py each, instead of compiling in memory",
    )

    save_generated_code: bool = Field(
        default=True,
        description="Keep the last generated module source for inspection",
    )

    # Error handling
    throw_exceptions: bool = Field(
        default=False,
        description="Re-raise captured errors instead of returning None",
    )

    # Logging
    verbosity: int = Field(
        default=1,
        description="LOG() verbosity (1=normal, 2=verbose, 3=debug)",
    )

    def className_make(self, unique_id: str) -> str:
        """
        Generate the class name for a generated script type.

        Args:
            unique_id: Short random identifier for the owning engine

        Returns:
            Class name string (e.g., "ScriptClass_k3j9x0ab")

        Example:
            >>> settings = AppSettings()
            >>> settings.className_make("k3j9x0ab")
            'ScriptClass_k3j9x0ab'
        """
        return f"ScriptClass_{unique_id}"

    def compileMode_make(self, is_async: bool) -> str:
        """
        Build the compilation mode string that is folded into cache keys.

        Example:
            >>> AppSettings().compileMode_make(False)
            'sync:optimize=-1'
        """
        return f"{'async' if is_async else 'sync'}:optimize={self.compile_optimize}"


# Singleton instance - import this in your code
appsettings = AppSettings()
