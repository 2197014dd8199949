"""
Live room domain logic.

Includes:
- room: Session lifecycle, stage management and chat for one room at a time.
"""
