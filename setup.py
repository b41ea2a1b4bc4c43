"""Setuptools configuration for the bulletin board app."""

from setuptools import find_packages, setup


setup(
    name="bulletin-board",
    version="0.1.0",
    description="Flask bulletin board with JSON-file storage per board",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    py_modules=[
        "app_config",
        "html_sanitizer",
        "post_store",
        "run",
        "upload_store",
    ],
    package_data={"board": ["templates/*.html", "templates/pages/*.html", "static/*.css"]},
    python_requires=">=3.10",
    install_requires=[
        "Flask>=3.0",
        "bleach>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "beautifulsoup4>=4.12",
        ],
        "docs": [
            "sphinx>=7.0",
        ],
    },
)
