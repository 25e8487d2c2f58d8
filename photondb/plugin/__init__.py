"""Plugin interface, registry, loader and manager."""