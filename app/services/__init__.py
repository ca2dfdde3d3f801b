"""
Kanban Board Services Package

Business operations behind the REST and realtime endpoints.

Core Services:
- access: capability checks and 404-before-403 resource resolution
- board_sync: consistency coordinator for column task lists
- broadcast: in-process per-topic realtime fan-out
- project_service, task_service, comment_service: board operations
- notification_service: notification side effects and read state
"""
