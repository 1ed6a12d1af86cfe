"""
txlogger Test Suite
===================

Test Organization
-----------------
- tests/unit/          : Fast unit tests with mocks and an in-memory channel
- tests/integration/   : Tests against a temporary SQLite database

Testing Philosophy
------------------
- Unit tests: fast, isolated, cover pipeline policy and adapters
- Integration tests: storage, the consumer and the purge job end to end
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
