from __future__ import annotations

from pathlib import Path
from setuptools import find_packages, setup

BASE_DIR = Path(__file__).parent
README = (BASE_DIR / "readme.md").read_text(encoding="utf-8") if (BASE_DIR / "readme.md").exists() else ""

setup(
    name="campus-attendance",
    version="0.1.0",
    description="Geofenced class attendance capture with a timed correction window, built with CustomTkinter.",
    long_description=README,
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    package_data={"campus_attendance.data": ["migrations/*.sql"]},
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "customtkinter>=5.2.0",
        "python-dotenv>=1.0.0",
        "requests>=2.31.0",
        "python-dateutil>=2.8.2",
        "supabase>=2.0.0",
        "postgrest>=0.13.0",
        "httpx>=0.24.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
        ]
    },
    entry_points={
        "gui_scripts": [
            "campus-attendance=campus_attendance.main:main",
        ]
    },
)
