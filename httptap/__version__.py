__title__ = "httptap"
__description__ = "Recipes for httpx, with byte-counting progress taps."
__version__ = "0.1.0"
