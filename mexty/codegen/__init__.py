"""Code generation — turn a registry snapshot into TypeScript exports.

Pipeline:
- Sanitizer: validate identifiers, escape string literals
- Synthesizer: build a structured module plan and render it to text
- Locator: find the target package on disk
- Materializer: write rendered modules and patch the entry point
"""
