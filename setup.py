from setuptools import find_namespace_packages, setup

setup(
    name="quiz-video-backend",
    version="0.1.0",
    package_dir={"": "backend"},
    packages=find_namespace_packages(where="backend", include=["shared*", "services*"]),
    py_modules=["app"],
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.115.3",
        "uvicorn[standard]>=0.30",
        "pydantic>=2.5",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
        "aiohttp>=3.9",
        "openai>=1.30",
        "Pillow>=10.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "httpx>=0.27",
        ],
    },
    include_package_data=True,
    description="Backend that turns quiz questions into short vertical videos",
)
