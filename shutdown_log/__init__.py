"""
Daily shutdown log service.

Users sign in through an external auth provider, fill out one structured
end-of-day log per calendar date, and browse prior logs. This package
provides the FastAPI application, the store abstractions, and the
read/update contract the front end calls into.
"""
