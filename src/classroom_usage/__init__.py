"""Classroom Usage package.

Feature modules (entities, timein, reports, archival) each follow the same
layering: dataclass models, a repository Protocol with in-memory and MySQL
implementations, a service holding the rules, and a thin Flask controller.
"""
