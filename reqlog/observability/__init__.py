"""Request-scoped logging helpers.

A request logger middleware builds one log entry per request and installs it into
contextvars, so code anywhere below it can add fields that end up on the single
"completed" line. Exceptions raised by downstream handlers are turned into a 500
response and a critical completion line.
"""
