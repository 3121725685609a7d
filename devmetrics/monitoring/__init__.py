"""Monitoring log: API transactions and frontend errors stored in Firestore."""
