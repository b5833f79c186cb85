"""Host-window visibility coordination."""

from chatbridge.visibility.service import VisibilityCoordinator
from chatbridge.visibility.views import CoordinatorConfig, HostSignal, HostWindow

__all__ = ['VisibilityCoordinator', 'CoordinatorConfig', 'HostSignal', 'HostWindow']
