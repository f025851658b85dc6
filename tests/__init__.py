"""
Test Suite for the Express API Documentation Synthesizer
=========================================================

Test Structure:
    - test_js_source.py: Tokenizer, handler and router-call finders
    - test_deterministic.py: Verb, status code and parameter heuristics
    - test_enum_extractor.py: Annotation grammar and scoped enum table
    - test_schema_generator.py: Feature discovery, schemas and tags
    - test_api_analyzer.py: Operations built from a sample project
    - test_swagger.py: Document assembly and atomic persistence
    - test_startup.py: Deferred generation timer
    - test_cli.py: Command-line entry point
"""

__version__ = "1.0.0"
