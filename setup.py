#!/usr/bin/env python
"""Setup configuration for the DentalHub access core."""

from setuptools import find_packages, setup

setup(
    name="dentalhub-access",
    version="0.1.0",
    description="Multi-tenant access control, subscription and audit core for dental clinics",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "pydantic>=2.5.0",
        "pydantic-settings>=2.0.0",
        "sqlalchemy>=2.0.23",
        "python-jose[cryptography]>=3.3.0",
        "bcrypt>=4.0.1",
        "structlog>=23.2.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
)
