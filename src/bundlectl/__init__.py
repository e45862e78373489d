"""bundlectl - manage agent, process and standard bundles"""

__version__ = "1.3.1"
