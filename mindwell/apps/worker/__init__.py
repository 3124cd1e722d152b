"""Worker package: workflow engine and the handlers it runs."""
