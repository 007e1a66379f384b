"""
Command modules loaded by ModuleLoader.

Every file here exposes ``async def setup(loader)`` and adds its
CommandModule instances with ``loader.add_module(...)``. Modules decorated
with ``@global_module`` are registered globally; all others are registered
to each guild the bot is in.
"""
