"""
staybook.integrations

Client boundaries for third-party systems.

Responsibilities:
- Stripe payments and Connect (`stripe_gateway`).
- Firebase Cloud Messaging push delivery (`push`).
- S3-compatible object storage for media and proof files (`storage`).
- External iCalendar feeds (`calendar_feed`).

Services depend on these classes only; tests swap them for in-memory fakes via `create_app(...)`.
"""
