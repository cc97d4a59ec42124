"""
Setup configuration for the Equipment Health Predictor
Enables the project to be installed as a Python package
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the contents of README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding='utf-8') if (this_directory / "README.md").exists() else ""

# Core dependencies
core_requirements = [
    'numpy>=1.24.0',
    'pandas>=2.0.0',
    'scikit-learn>=1.3.0',
    'joblib>=1.3.0',
    'tensorflow>=2.13.0',
    'pyyaml>=6.0.0',
    'python-dotenv>=1.0.0',
    'colorlog>=6.7.0',
    'requests>=2.31.0',
    'schedule>=1.2.0',
    'flask>=2.3.0',
]

extras_require = {
    'dev': [
        'pytest>=7.4.0',
        'pytest-cov>=4.1.0',
    ],
}

setup(
    name='equipment-health-predictor',
    version='1.0.0',
    author='Equipment Analytics Team',
    description='Periodic equipment health prediction from refrigeration sensor readings',
    long_description=long_description,
    long_description_content_type='text/markdown',
    license='MIT',

    # Package discovery
    packages=find_packages(where='src'),
    package_dir={'': 'src'},

    python_requires='>=3.8',

    # Dependencies
    install_requires=core_requirements,
    extras_require=extras_require,

    # Entry points for CLI commands
    entry_points={
        'console_scripts': [
            'equipment-health-pipeline=equipment_health.cli:main',
        ],
    },

    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Topic :: Scientific/Engineering :: Artificial Intelligence',
        'Topic :: System :: Monitoring',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent',
        'Environment :: Console',
    ],

    keywords='predictive-maintenance anomaly-detection lstm autoencoder random-forest rul',

    zip_safe=False,
)
