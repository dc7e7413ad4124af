"""
EventSphere - Test Suite

Structure:
- unit/: Unit tests for lifecycle rules, services, jobs and routes
- integration/: Integration tests for API endpoints
"""
