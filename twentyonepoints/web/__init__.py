from twentyonepoints.web.mappings import (
    DeleteMapping,
    GetMapping,
    PostMapping,
    PutMapping,
    RestController,
)
from twentyonepoints.web.params import PathVariable, QueryParam, RequestBody
from twentyonepoints.web.response import ResponseEntity

__all__ = [
    "RestController",
    "GetMapping",
    "PostMapping",
    "PutMapping",
    "DeleteMapping",
    "PathVariable",
    "QueryParam",
    "RequestBody",
    "ResponseEntity",
]
