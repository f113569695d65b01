"""
Task sync subsystem.

Components:
- session.py: signed-in identity and auth flows
- task_store.py: task cache for the active scope
- groups.py: groups, the selected group and its members
- activity.py: activity feed and notifications
- comments.py: task comments
- projector.py: pure filtering and summary stats
- controller.py: wiring + one coroutine per user action
"""
