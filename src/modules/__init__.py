"""
Domain modules of the users service.

- users: accounts, login, balance grants
- store: catalog, purchases, refunds, equip slots
- stats: per-user match statistics
- news: announcements
- shared: base service/repository and domain exceptions
"""
