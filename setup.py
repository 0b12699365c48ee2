from setuptools import find_packages, setup


with open('README.rst') as f:
      readme = f.read()

setup(
      name='treedigest',
      version='0.1.0',
      description='Python package for streaming TDigest calculation on a balanced tree.',
      long_description=readme,
      keywords='tdigest, distribution, statistics, quantiles, streaming',
      python_requires=">=3.7, <4",
      install_requires=['numpy>=1.19.0', 'pandas>=1.1.0'],
      extras_require={'test': ['pytest>=6.0']},
      classifiers=[
            "Development Status :: 3 - Alpha",
            "Intended Audience :: Science/Research",
            "License :: OSI Approved :: Apache Software License",
            "Programming Language :: Python :: 3",
            "Programming Language :: Python :: 3.7",
            "Programming Language :: Python :: 3.8",
            "Programming Language :: Python :: 3.9",
            "Programming Language :: Python :: 3.10",
      ],
      packages=find_packages(where=".", exclude=["tests", "tests.*"]),
)
