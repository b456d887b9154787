"""
staybook.jobs

Periodic background work (arq cron worker).
"""
