from setuptools import find_packages, setup

setup(
    name="obs-do",
    description="Control a running OBS instance over its WebSocket server",
    version="0.1",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=["anyio", "aiohttp", "platformdirs"],
    extras_require={"test": ["pytest", "pytest-asyncio"]},
    entry_points={"console_scripts": ["obs-do = obs_do.cli:main"]},
)
