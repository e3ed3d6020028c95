from pathlib import Path

from setuptools import setup

this_directory = Path(__file__).parent
long_description = (this_directory / "README.rst").read_text()

setup(
    name="clean_wire",
    use_scm_version={"fallback_version": "0.1.0"},
    setup_requires=["setuptools_scm"],
    license="MIT",
    description="A configuration driven dependency injection container for Python 3.10 +",
    long_description=long_description,
    packages=["clean_wire", "clean_wire.ext", "clean_wire.ext.fastapi"],
    package_data={"clean_wire": ["CHANGES.md"]},
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "theutilitybelt",
        "PyYAML",
    ],
    extras_require={
        "fastapi": ["fastapi"],
        "test": ["pytest", "assertive<1.0", "fastapi", "httpx"],
    },
    platforms="any",
    classifiers=[
        "Programming Language :: Python",
        "Development Status :: 4 - Beta",
        "Natural Language :: English",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Software Development :: Libraries :: Application Frameworks",
    ],
)
