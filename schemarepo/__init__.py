import importlib

mod = "schemarepo"
class LazyLoader:
    """
    Lazy loader for the schemarepo API to speed up startup time.
    """
    def __init__(self, mappings):
        self._modules = {}
        self._mappings = mappings

    def _load_module(self, module_name):
        if module_name not in self._modules:
            self._modules[module_name] = importlib.import_module(module_name)
        return self._modules[module_name]

    def __getattr__(self, item):
        if item in self._mappings:
            module_name, attr_name = self._mappings[item]
            module = self._load_module(module_name)
            return getattr(module, attr_name)
        else:
            return self._load_module(f"{mod}.{item}")

# Define the public names and their corresponding module paths
_mappings = {
    "SchemaRepository": (f"{mod}.repository", "SchemaRepository"),
    "Validator": (f"{mod}.schemavalidator", "Validator"),
    "ValidationResult": (f"{mod}.schemavalidator", "ValidationResult"),
    "ValidatorContext": (f"{mod}.validation", "ValidatorContext"),
    "JsonSchemaOptions": (f"{mod}.options", "JsonSchemaOptions"),
    "Draft": (f"{mod}.options", "Draft"),
    "OutputFormat": (f"{mod}.options", "OutputFormat"),
    "SchemaIndex": (f"{mod}.schemaindex", "SchemaIndex"),
    "SchemaResolver": (f"{mod}.resolver", "SchemaResolver"),
    "SchemaURL": (f"{mod}.common", "SchemaURL"),
    "SchemaException": (f"{mod}.exceptions", "SchemaException"),
    "SchemaResolutionError": (f"{mod}.exceptions", "SchemaResolutionError"),
    "ValidationError": (f"{mod}.exceptions", "ValidationError"),
    "NoSyncValidationError": (f"{mod}.exceptions", "NoSyncValidationError"),
}

_lazy_loader = LazyLoader(_mappings)

def __getattr__(name):
    return getattr(_lazy_loader, name)
