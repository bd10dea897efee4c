"""Order Service API.

FastAPI-based backend providing:
- Order listing with search, filters, sorting and pagination (Firestore)
- Order creation, update, action/status patches and deletion
- Tracking ID generation and lookup
- Firebase-backed user signup, signin and profile lookup

Order endpoints are public; /api/auth/me requires a Firebase ID token.
"""
