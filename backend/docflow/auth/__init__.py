"""Authentication and branch-scoped authorization"""
