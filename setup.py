"""Install the account flows service."""

from setuptools import setup, find_packages

setup(
    name='account-flows',
    version='0.1.0',
    packages=find_packages(exclude=['*tests*']),
    package_data={'account_flows': ['templates/account_flows/*.html']},
    include_package_data=True,
    install_requires=[
        "flask",
        "flask-sqlalchemy",
        "sqlalchemy",
        "werkzeug",
        "wtforms",
        "email-validator",
        "pyjwt",
        "pytz",
        "retry",
        "python-json-logger",
    ],
    extras_require={
        'test': ['pytest'],
    },
    zip_safe=False
)
