"""
Core request policy.

This module is framework-agnostic - it doesn't import FastAPI or boto3,
so the access rules can be tested in isolation.
"""
