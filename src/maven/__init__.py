"""Maven adapters: repository layout, local repository, POM model, HTTP resolution and the reactor."""
