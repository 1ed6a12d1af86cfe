from txlogger.modules.adapters.component import ComponentLogAdapter
from txlogger.modules.adapters.inprocess import Logger, resolve_origin
from txlogger.modules.adapters.workflow import FlowLogEntry, WorkflowLogAdapter

__all__ = ["ComponentLogAdapter", "FlowLogEntry", "Logger", "WorkflowLogAdapter", "resolve_origin"]
