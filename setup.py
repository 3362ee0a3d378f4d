from setuptools import setup, find_namespace_packages

setup(
    name="pems-bottlenecks",
    version="0.1.0",
    description="Freeway bottleneck identification and analysis on Caltrans PeMS data",
    author="PeMS Bottlenecks",
    packages=find_namespace_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "pandas>=2.0.0",
        "numpy>=1.25.0",
        "streamlit>=1.31.0",
        "pydantic>=2.6.0",
        "python-dateutil>=2.8.2",
        "openpyxl>=3.1.2",
        "plotly>=5.18.0",
        "scikit-learn>=1.3.0",
    ],
    extras_require={
        "test": ["pytest>=7.4.0"],
    },
)
