"""
RCSSA Match
Pairs students who submit a profile with a study buddy, same major first.

Architecture:
- Profile Store: MongoDB (default), PostgreSQL, or in-memory
- Matching Engine: find a candidate, then commit the pair atomically
- FastAPI: submit + status-poll endpoints
"""

__version__ = "1.0.0"
