from setuptools import setup, find_packages

setup(
    name="clientbuild",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "rich",
        "requests",
        "python-dotenv",
        "srp",
        "toml",
        "rich-argparse",
        "qrcode",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "clientbuild=clientbuild.cli:main",
        ],
    },
)
