"""
Master Events

Callback-coordination barrier for fan-out / fan-in work.

Responsibilities:
- Track named slaves and their expected completion counts
- Fire group handlers when a subset of slaves completes
- Fire the master once every slave has completed, with all slave errors
- Reset for the next round after the master fires

NO:
- Scheduling or threads of its own
- Timeouts or cancellation
- Raising on slave errors (errors are data)
"""

from .config import CoordinatorConfig, load_config
from .events import BroadcastEvent, CompletionHandler, ErrorList
from .group import GroupKey, GroupTracker, make_group_key
from .master import MasterEventHandler
from .slave import ParamValidator, SlaveTracker

__all__ = [
    'BroadcastEvent',
    'CompletionHandler',
    'ErrorList',
    'SlaveTracker',
    'ParamValidator',
    'GroupKey',
    'GroupTracker',
    'make_group_key',
    'MasterEventHandler',
    'CoordinatorConfig',
    'load_config'
]
