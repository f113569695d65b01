"""
Core types shared by every layer.

Components:
- models.py: records (Task, Group, Membership, ...) and row normalization
- ports.py: RemoteStore / AuthProvider protocols and query filters
- errors.py: error taxonomy + user-facing messages
- state.py: explicit UI/view state
"""
