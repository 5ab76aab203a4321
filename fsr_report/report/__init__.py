"""
Report assembly and rendering engine.

Builders turn request data into HTML fragments, the assembler binds them
into a report template, and the render engine exports the bound document
to PDF bytes.
"""
