"""ShareMe — multi-user project and task tracker.

Projects with an owner and members, tasks inside projects, personal
notes on tasks and shared project documents. The interesting part is
the security core: stateless bearer tokens, single-use password reset
tokens, and owner/member authorization over every resource.
"""

__version__ = "0.1.0"
