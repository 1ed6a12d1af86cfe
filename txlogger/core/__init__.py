"""
Core infrastructure for txlogger.

- config: Config (environment) and ConfigManager (YAML + runtime overrides)
- logging: structured stdlib logging with context propagation
- event: in-process async EventBus, the pipeline's asynchronous channel
- database: DatabaseService (async SQLAlchemy engine and session scopes)
- exceptions: TxLoggerError hierarchy

Import from the subpackages directly; this package re-exports nothing so that
importing one subsystem never drags in the others.
"""
