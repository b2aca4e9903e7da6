"""Pytest configuration for spheretrace tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would
    invalidate the module-level fields of the package.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear the uploaded scene and the byte buffer around each test."""
    # Import here so that Taichi is initialized before fields are declared
    from spheretrace.core.integrator import clear_pixels
    from spheretrace.scene.intersection import clear_scene

    clear_scene()
    clear_pixels()

    yield

    clear_scene()
    clear_pixels()
