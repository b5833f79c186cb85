"""Execution bridge between the host and embedded contexts."""

from chatbridge.bridge.service import ExecutionBridge
from chatbridge.bridge.views import REPORT_FUNCTION, BridgeConfig, ExecutionRequest

__all__ = ['ExecutionBridge', 'BridgeConfig', 'ExecutionRequest', 'REPORT_FUNCTION']
