"""
High-level use cases for the kindergarten site.

Each service orchestrates the repositories and stores to implement a rule
(admin login and lockout, contact submission, export, autosave). Routers call
these services instead of touching storage directly.
"""
