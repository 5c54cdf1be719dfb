import setuptools
from setuptools import find_packages

with open("readme.md", "r") as fh:
    long_description = fh.read()


vars2find = ["__author__", "__version__"]
vars2readme = {}
with open("./invoify/__init__.py") as f:
    for line in f.readlines():
        for v in vars2find:
            if line.startswith(v):
                line = line.replace(" ", "").replace('"', "").replace("'", "").strip()
                vars2readme[v] = line.split("=")[1]

core_deps = [
    "pydantic>=2.0.0",
    "redis[hiredis]>=5.0.0",
]

api_deps = [
    "fastapi>=0.100.0",
    "pydantic-settings>=2.0.0",
    "uvicorn[standard]",
]

setuptools.setup(
    name="invoify",
    version=vars2readme["__version__"],
    author=vars2readme["__author__"],
    description="Per-user backup, restore and export for the invoify invoicing app",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
    install_requires=core_deps + api_deps,
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
            "httpx",
        ],
    },
)
