"""Schema-pattern migrations for the bookstore catalog and review collections."""
