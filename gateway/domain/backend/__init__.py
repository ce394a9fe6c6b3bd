"""
Backend bounded context: Firestore documents, Firebase Auth users and
Cloud Storage files, plus the change events emitted when documents mutate.
"""
