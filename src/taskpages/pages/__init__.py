"""
Pages subsystem.

Components:
- models.py: data structures (Page, Task, Step, Attachment, enums)
- page_store.py: JSON-backed store + mutation helpers
- views.py: filter/search/sort for what a page shows
- attachments.py: copying attachment files into private storage
- page_api.py: high-level operations that keep reminders in step with the store
"""
