"""Setup script for the facegate verification package."""

from setuptools import setup, find_packages
from pathlib import Path

# Read README if it exists
readme_file = Path(__file__).parent / "README.md"
long_description = ""
if readme_file.exists():
    long_description = readme_file.read_text(encoding="utf-8")

setup(
    name="facegate",
    version="0.1.0",
    description="Real-time face verification against an employee backend",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Facegate Team",
    packages=find_packages(exclude=["tests*", "docs*"]),
    python_requires=">=3.9,<3.12",
    install_requires=[
        "insightface>=0.7.3",
        "onnxruntime>=1.16.3",  # 1.16.3 for Mac CoreML compatibility
        "opencv-python>=4.9.0,<4.12",  # Lock to 4.11.x for NumPy 1.x compatibility
        "numpy>=1.26.0,<2.0",  # Lock to 1.x for onnxruntime compatibility
        "tqdm>=4.66.0",
        "pyyaml>=6.0.0",
        "requests>=2.31.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "black",
            "flake8",
            "mypy",
        ],
    },
    entry_points={
        "console_scripts": [
            "facegate-verify=scripts.verify_stream:main",
            "facegate-register=scripts.register_employee:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
