"""Setup configuration for storefront-admin project."""

from setuptools import setup, find_packages

setup(
    name="storefront-admin",
    version="1.0.0",
    description="Admin backend for users, products and orders with transactional stock control",
    author="Your Name",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.109.0",
        "uvicorn>=0.27.0",
        "sqlalchemy>=2.0.23",
        "psycopg2-binary>=2.9.9",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "werkzeug>=3.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "httpx>=0.26.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "storefront-admin=storefront_admin.main:run",
        ],
    },
)
