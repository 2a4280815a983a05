"""Setup configuration for pr_maturity"""

from setuptools import setup, find_packages

setup(
    name="gh-pr-maturity-score",
    version="0.1.0",
    description=(
        "CLI tool for GitHub pull request maturity scoring: commit hygiene, "
        "approvals, branch naming, business-hours close time and observations."
    ),
    author="GH PR Maturity Score Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "requests>=2.28.0",
        "tzdata>=2023.3",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "pr-maturity-score=pr_maturity.main:main",
        ],
    },
)
