"""
Evaluates the condition functions of a synthesized template for a given set of
parameter values, the way CloudFormation does at deploy time. Only covers the
intrinsics the image stack uses for conditional properties.
"""

NO_VALUE = object()


class TemplateResolver:

    def __init__(self, cfn_template: dict, parameters: dict = None) -> None:
        self.cfn_template = cfn_template
        self.parameters = {}
        for name, definition in cfn_template.get("Parameters", {}).items():
            value = (parameters or {}).get(name, definition.get("Default"))
            if definition.get("Type") == "CommaDelimitedList" and isinstance(value, str):
                value = value.split(",")
            self.parameters[name] = value

    def condition(self, name: str) -> bool:
        return bool(self.resolve(self.cfn_template["Conditions"][name]))

    def resource_properties(self, logical_id: str) -> dict:
        properties = self.cfn_template["Resources"][logical_id].get("Properties", {})
        return self.resolve(properties)

    def resolve(self, value):
        if isinstance(value, list):
            resolved = [self.resolve(item) for item in value]
            return [item for item in resolved if item is not NO_VALUE]

        if not isinstance(value, dict):
            return value

        if len(value) == 1:
            function, args = next(iter(value.items()))
            if function == "Ref":
                if args == "AWS::NoValue":
                    return NO_VALUE
                if args in self.parameters:
                    return self.parameters[args]
                return value
            if function == "Fn::If":
                condition, if_true, if_false = args
                return self.resolve(if_true if self.condition(condition) else if_false)
            if function == "Fn::Equals":
                left, right = [self.resolve(arg) for arg in args]
                return left == right
            if function == "Fn::Not":
                return not self.resolve(args[0])
            if function == "Condition":
                return self.condition(args)

        resolved = {key: self.resolve(item) for key, item in value.items()}
        return {key: item for key, item in resolved.items() if item is not NO_VALUE}
