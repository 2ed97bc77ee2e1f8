"""
Script context modules: log, timer.
"""

from regtest_scenarios.engines.script.modules.log import make_log_module
from regtest_scenarios.engines.script.modules.timers import make_timer_module

__all__ = [
    "make_log_module",
    "make_timer_module",
]
