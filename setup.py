from setuptools import setup, find_packages

setup(
    name="feed-rules-engine",
    version="0.1",
    packages=find_packages('src'),
    package_dir={'': 'src'},
    install_requires=[
        'SQLAlchemy>=2.0.19',
        'python-dateutil>=2.8.2',
        'python-dotenv>=1.0.0',
        'pydantic>=2.6.1',
        'structlog>=23.1.0',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'feed-rules=feed_rules.main:main',
        ],
    },
)
