"""
Core infrastructure layer for the users service.

Subpackages
-----------
- config: environment-driven ``Config``
- database: ``DatabaseService`` and the ORM base
- logging: structured logging and request context
- auth: claims decoding, authorization guard, token issuing
- validation: ``InputValidator``
- services: ``ServiceContainer`` wiring
- exceptions: infrastructure exception hierarchy

Non-Responsibilities
--------------------
- Business rules (src.modules)
- HTTP concerns (src.api)

Nothing is re-exported here; import from the subpackage that owns the
symbol. Domain exceptions import ``src.core.exceptions`` and the auth guard
imports domain exceptions, so eager re-exports would form an import cycle.
"""
