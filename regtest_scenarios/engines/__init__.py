"""
Engines: declarative interpreter (JSON actions), script sandbox (RestrictedPython), ScriptEngine facade.
"""

from regtest_scenarios.engines.executor import ScriptEngine

__all__ = [
    "ScriptEngine",
]
