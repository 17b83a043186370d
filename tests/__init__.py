"""
Users Service Test Suite
========================

Test Organization
-----------------
- tests/unit/          : Auth, pipeline and error units; services on in-memory SQLite
- tests/api/           : HTTP gateway through the ASGI app
- tests/integration/   : PostgreSQL via testcontainers (RUN_INTEGRATION=1)

Testing Philosophy
------------------
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
