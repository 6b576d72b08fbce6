"""
Tasks Service package for the Task List access layer.

The service exposes task CRUD over HTTP, enforcing:
- Authentication: stateless bearer credentials on every mutating route
- Caching: cache-aside response cache on reads, scope-wide invalidation on writes

Structure:
- app.main: FastAPI app, routes, and dependency wiring.
- app.auth: Credential issuance/verification and the auth gate.
- app.caching: Response cache and its stores.
- app.persistence: Task and user repositories.
- app.services: Task CRUD and identification logic.
"""
