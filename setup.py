"""Setup configuration for site-rag-server."""
from setuptools import setup, find_packages

setup(
    name="site-rag-server",
    version="1.0.0",
    description="Website-grounded RAG chatbot server with an in-memory index",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.104.0",
        "uvicorn>=0.24.0",
        "httpx>=0.27.0",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.0.0",
        "python-dotenv>=1.0.0",
        "python-multipart>=0.0.6",
        "beautifulsoup4>=4.12.0",
        "lxml>=4.9.0",
        "click>=8.1.0",
        "numpy>=1.24.0",
        "sentence-transformers>=2.2.0",
        "transformers>=4.36.0",
        "pypdf>=3.17.0",
    ],
    extras_require={
        "dev": ["pytest", "pytest-asyncio", "httpx"],
    },
    entry_points={
        "console_scripts": [
            "site-rag-server=site_rag.__main__:main",
            "site-rag=site_rag.indexing.cli:main",
        ],
    },
)
