"""Test package for the location cluster map.

This package contains:
- Unit tests (test_validation.py, test_clustering.py, test_state.py, test_annotations.py)
- Boundary tests (test_sources.py, test_config_loader.py)
- Pipeline and server tests (test_service.py, test_actions.py)
- Test configuration (conftest.py)
"""
