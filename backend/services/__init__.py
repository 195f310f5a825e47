"""
Service layer for business logic.

Services take the request's AsyncSession and flush; routes own the commit.
"""
