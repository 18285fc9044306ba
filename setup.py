from setuptools import setup, find_packages
from pathlib import Path


def read_readme():
    this_directory = Path(__file__).parent
    readme_file = this_directory / 'README.md'
    if readme_file.exists():
        return readme_file.read_text(encoding='utf-8')
    return ""


setup(
    name="pglit",
    version="0.3.0",
    description="Create and drop PostgreSQL databases from async Python, with a psycopg_pool bootstrap helper.",
    long_description=read_readme(),
    long_description_content_type='text/markdown',
    packages=find_packages(include=["pglit", "pglit.*"]),
    python_requires=">=3.11",
    install_requires=[
        "psycopg[binary]>=3.1",
        "psycopg-pool>=3.2",
        "pydantic>=2.5",
        "typer>=0.9",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Database",
    ],
    keywords="postgresql postgres psycopg database create drop pool",
    entry_points={
        'console_scripts': [
            'pglit=pglit.cli.ctl:cli_app',
        ],
    },
)
