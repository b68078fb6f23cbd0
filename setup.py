"""
Setup configuration for the Team Backend service
"""

from setuptools import setup, find_packages

setup(
    name="team-backend",
    version="1.0.0",
    description="Team management API: teams, members, permissions and team conversations with event fan-out",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.104.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "asyncpg>=0.29.0",
        "httpx>=0.25.0",
        "uvicorn>=0.24.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "black>=23.0.0",
            "mypy>=1.5.0",
        ]
    },
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
