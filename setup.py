"""
Setup script for lead-finder project.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_namespace_packages

setup(
    name="lead-finder",
    version="0.1.0",
    packages=find_namespace_packages(include=["src", "src.*"]),
    python_requires=">=3.11",
    install_requires=[
        "pymongo>=4.0",
        "pydantic>=2.0",
        "langchain-core>=0.2",
        "langchain-openai>=0.1",
        "tenacity>=8.0",
        "python-dotenv>=1.0",
        "requests>=2.31",
        "beautifulsoup4>=4.12",
        "json-repair>=0.25",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
)
