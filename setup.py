# setup.py
from setuptools import setup, find_packages

setup(
    name="site_audit",
    version="0.1.0",
    description="Асинхронный аудитор сайтов SiteAudit: обход, Lighthouse и SSE-прогресс",
    packages=find_packages(exclude=("tests", "tests.*")),
    package_data={"site_audit": ["templates/*.j2"]},
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "click>=8.1",
        "jinja2>=3.1",
        "playwright>=1.40",
        "pydantic>=2.5",
        "PyYAML>=6.0",
        "rcssmin>=1.1",
        "rjsmin>=1.2",
    ],
    extras_require={
        "test": [
            "pytest>=7.4,<9",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": ["site-audit=site_audit.cli:cli"],
    },
    python_requires=">=3.11",
)
