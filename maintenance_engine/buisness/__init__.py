"""
Domain layer for the maintenance engine.
Contains business logic, factories, state machines and value objects
separated from data persistence concerns.
"""
