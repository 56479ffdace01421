from setuptools import setup

with open("README.rst") as readme:
    long_description = readme.read()

setup(
    name="btc-tx-builder",
    version="0.1.0",
    description="Bitcoin family transaction builder",
    long_description=long_description,
    author="The btc-tx-builder developers",
    license="MIT",
    keywords="bitcoin litecoin dogecoin transaction builder segwit taproot",
    install_requires=[
        "base58>=2.1,<3.0",
        "ecdsa>=0.18,<1.0",
        "coincurve>=18.0.0",
        "sympy>=1.2,<2.0",
        "pycryptodome>=3.15",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    packages=["btcbuilder"],
    zip_safe=False,
)
