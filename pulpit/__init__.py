"""
Pulpit: the content service behind the church app.

A FastAPI application over SQLAlchemy, with S3 storage for media and a
Redis-fed worker that delivers push notifications through Expo.
"""
