from pathlib import Path

from setuptools import find_packages, setup


def load_requirements() -> list[str]:
    req_path = Path(__file__).parent / "requirements.txt"
    lines = req_path.read_text(encoding="utf-8").splitlines()
    return [
        line.strip()
        for line in lines
        if line.strip() and not line.strip().startswith("#")
    ]


setup(
    name="anki-companion",
    version="0.1.0",
    description="Turn looked-up English and Polish words into Anki flashcards with Russian translations",
    packages=find_packages(include=["anki_companion", "anki_companion.*"]),
    python_requires=">=3.10",
    install_requires=load_requirements(),
    extras_require={
        "test": ["pytest>=7", "httpx>=0.25"],
    },
    entry_points={
        "console_scripts": [
            "anki-companion=anki_companion.__main__:main",
        ]
    },
)
