from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="metaprep",
    version="1.0.0",
    description="Media compression and metadata stripping for PNG, WebP, WAV, MP3 and MP4",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Topic :: Multimedia",
        "Topic :: Security",
    ],
    python_requires=">=3.8",
    install_requires=[
        "pillow>=9.1.0",
        "mutagen>=1.45.0",
        "colorama>=0.4.4",
        "tabulate>=0.8.9",
        "tqdm>=4.62.0",
        "exifread>=2.3.2",
    ],
    extras_require={
        'test': [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "metaprep=metaprep.main:main",
        ],
    },
)
