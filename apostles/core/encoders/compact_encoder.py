import json


class CompactArrayEncoder(json.JSONEncoder):
    """
    JSON encoder keeping flat records on one line.

    Lists of scalars and objects holding only scalars (an assignment row, a
    customer record without nested lists) are written inline; everything
    else is indented, so a report with hundreds of respondents stays readable.
    """

    max_inline_width = 160

    def encode(self, obj):
        return self._encode_obj(obj, 0)

    def _is_scalar(self, value) -> bool:
        return isinstance(value, (int, str, float, bool, type(None)))

    def _inline(self, obj):
        if isinstance(obj, list):
            return '[' + ', '.join(json.dumps(item) for item in obj) + ']'
        return '{' + ', '.join(f'{json.dumps(k)}: {self._inline_value(v)}' for k, v in obj.items()) + '}'

    def _inline_value(self, value):
        if isinstance(value, list):
            return self._inline(value)
        return json.dumps(value)

    def _is_flat(self, obj) -> bool:
        if isinstance(obj, list):
            return all(self._is_scalar(item) for item in obj)
        if isinstance(obj, dict):
            return all(
                self._is_scalar(v) or (isinstance(v, list) and all(self._is_scalar(i) for i in v))
                for v in obj.values()
            )
        return True

    def _encode_obj(self, obj, indent_level):
        indent = '  ' * indent_level
        next_indent = '  ' * (indent_level + 1)

        if isinstance(obj, (dict, list)) and not obj:
            return '{}' if isinstance(obj, dict) else '[]'

        if isinstance(obj, (dict, list)) and self._is_flat(obj):
            inline = self._inline(obj)
            if len(inline) <= self.max_inline_width or isinstance(obj, list):
                return inline

        if isinstance(obj, dict):
            items = [
                f'{next_indent}{json.dumps(key)}: {self._encode_obj(value, indent_level + 1)}'
                for key, value in obj.items()
            ]
            return '{\n' + ',\n'.join(items) + '\n' + indent + '}'

        if isinstance(obj, list):
            items = [f'{next_indent}{self._encode_obj(item, indent_level + 1)}' for item in obj]
            return '[\n' + ',\n'.join(items) + '\n' + indent + ']'

        return json.dumps(obj)
