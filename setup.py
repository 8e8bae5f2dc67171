import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="rdb2dc",
    version="0.1.0",
    description="Exports a scholarly works publication database to Dublin"
    " Core item folders for DSpace batch import",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(exclude=["tests"]),
    install_requires=[
        "lxml",
        "SQLAlchemy>=1.4",
    ],
    extras_require={
        "tests": ["pytest"],
    },
    entry_points={
        "console_scripts": ["rdb2dc=rdb2dc.export:main"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.7',
)
