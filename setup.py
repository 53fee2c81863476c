#!/usr/bin/env python
from setuptools import find_packages, setup

VERSION = "1.0.0"
INSTALL_REQUIREMENTS = [
    "Django>=5.0",
    "celery>=5.3",
    "django-ninja>=1.1,<1.5",
    "django-redis>=5.4",
    "django-structlog>=8.0",
    "nh3>=0.2",
    "psycopg2-binary>=2.9",
    "requests>=2.31",
    "sentry-sdk>=1.40",
    "structlog>=24.1",
]
TEST_REQUIREMENTS = ["pytest", "pytest-django"]
SCRIPTS = ["manage.py"]
DESCRIPTION = "Content publishing endpoint with remote image import"
CLASSIFIERS = """\
Environment :: Web Environment
Framework :: Django
Programming Language :: Python
Programming Language :: Python :: 3
""".splitlines()

with open("README.md", "r") as f:
    LONG_DESCRIPTION = f.read()


setup(
    name="publisher",
    version=VERSION,
    description=DESCRIPTION,
    long_description=LONG_DESCRIPTION,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["publisher*", "importer*", "configuration*"]),
    include_package_data=True,
    scripts=SCRIPTS,
    install_requires=INSTALL_REQUIREMENTS,
    extras_require={"test": TEST_REQUIREMENTS},
    classifiers=CLASSIFIERS,
)
