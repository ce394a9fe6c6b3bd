"""
Firebase Admin Gateway: administrative REST/WebSocket façade over Firebase.

Application package root. The layout follows hexagonal architecture
(ports & adapters).

Bounded contexts:
    - backend: Firestore documents, Firebase Auth users, Cloud Storage files.

Layers:
    - domain: Entities, ports (ABCs), backend errors. No framework imports.
    - application: Use cases, DTOs, orchestration (publish-after-write).
    - infrastructure: Firebase and in-memory adapters, change fan-out.
    - interfaces: FastAPI routers, Pydantic schemas, WebSocket gateway.
    - shared: Cross-cutting concerns (fault capture, error normalization,
      security, logging).
"""
