"""High-level chat automation."""

from chatbridge.automation.service import ChatAutomation
from chatbridge.automation.views import AutomationConfig, AutomationResult, SendRequest

__all__ = ['ChatAutomation', 'AutomationConfig', 'AutomationResult', 'SendRequest']
