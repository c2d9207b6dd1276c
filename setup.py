from setuptools import setup, find_packages

setup(
    name="udpcomm",
    version="1.0.0",
    description="UDP request/response server and multicast group chat",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "colorama",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "udpcomm-server = udpcomm.server:main",
            "udpcomm-client = udpcomm.client:main",
            "udpcomm-chat = udpcomm.chat:main",
        ],
    },
    python_requires=">=3.10",
)
