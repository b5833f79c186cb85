"""Script compilation for embedded contexts."""

from chatbridge.compiler.service import ScriptCompiler, js_string
from chatbridge.compiler.views import CompilerConfig

__all__ = ['ScriptCompiler', 'CompilerConfig', 'js_string']
