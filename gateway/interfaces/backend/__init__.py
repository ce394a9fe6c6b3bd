"""
HTTP interface of the backend bounded context.

One router per Firebase service (Firestore, Auth, Storage) plus the
admin router. All of them are mounted under the API prefix.
"""
