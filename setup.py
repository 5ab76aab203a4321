"""
Setup script for the FSR report service.

Allows development installation with `pip install -e .`
Install test dependencies with `pip install -e .[test]`
"""

from setuptools import setup, find_packages

setup(
    name="fsr-report",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"fsr_report.report": ["templates/*.html"]},
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "python-dotenv>=1.0",
        "playwright>=1.40",
        "tenacity>=8.2",
        "beautifulsoup4>=4.12",
        "boto3>=1.28",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.21",
            "httpx>=0.25",
        ],
    },
)
