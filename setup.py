"""Install the authflow package."""

from setuptools import setup, find_packages

setup(
    name='authflow',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    python_requires='>=3.8',
    install_requires=[
        "wtforms",
        "werkzeug",
        "pyjwt",
        "pytz",
        "python-dateutil",
        "blinker"
    ],
    extras_require={
        'test': ['pytest']
    },
    zip_safe=False
)
