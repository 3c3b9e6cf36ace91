"""
Reminder subsystem.

Components:
- triggers.py: calendar/interval triggers and the recurrence -> trigger mapping
- notification_center.py: in-process pending/delivered notification bookkeeping
- reminder_service.py: what the app schedules (task, daily follow-up, fixed-time, test)
- delivery.py: polling loop that hands due notifications to a Notifier
"""
