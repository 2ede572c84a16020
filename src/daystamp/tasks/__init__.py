"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskDraft, TaskTag) and date/time formats
- migrations.py: upgrade of older stored records into the current Task shape
- recurrence.py: next occurrence of a completed recurring task
- task_store.py: in-memory task list + monthly goals, persisted as key-value blobs
- aggregate.py: per-day buckets, stamped days, progress, month/week views
- task_scheduler.py: polling scheduler that fires due-soon reminders once per task
"""
