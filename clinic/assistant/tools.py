"""Function declarations advertised to the model, derived from the query registry."""
from clinic.services.access import Capability
from clinic.services.queries import Operation, available_operations


def _schema(param) -> dict:
    schema = {'type': param.type}
    if param.description:
        schema['description'] = param.description
    if param.enum:
        schema['enum'] = list(param.enum)
    return schema


def declaration(op: Operation, capability: Capability) -> dict:
    params = op.visible_params(capability)
    decl = {'name': op.name, 'description': op.describe(capability)}
    # Gemini rejects an object schema with no properties
    if params:
        decl['parameters'] = {
            'type': 'object',
            'properties': {p.name: _schema(p) for p in params},
            'required': [p.name for p in params if p.required],
        }
    return decl


def build_tool_declarations(capability: Capability) -> list:
    return [declaration(op, capability) for op in available_operations(capability)]
