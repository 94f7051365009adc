"""
Helm values schema service.
"""
