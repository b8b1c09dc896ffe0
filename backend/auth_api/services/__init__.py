"""Service layer: use cases, ports and DTOs.

Import concrete services from their subpackages, e.g.
:class:`auth_api.services.auth.AuthService`.
"""
