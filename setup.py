import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

with open('VERSION', 'r') as fh:
    VERSION = fh.read().strip()

setuptools.setup(
    name="archsetup",
    version=VERSION,
    description="Arch Linux installer - guided, turbo and post-install scripts",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(exclude=['tests', 'tests.*']),
    classifiers=[
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
        "Operating System :: POSIX :: Linux",
    ],
    python_requires='>=3.12',
    install_requires=['pydantic'],
    extras_require={'test': ['pytest']},
    entry_points={
        'console_scripts': [
            'archsetup = archsetup:run_as_a_module',
        ],
    },
)
