# Shared library for the CareerHub platform
