from fastcore.basics import camel2snake


def underscore(name: str) -> str:
    "Convert a class name such as `CreditCard` to `credit_card`"
    return camel2snake(name)


def pluralize(word: str) -> str:
    "Naive English plural: `position` -> `positions`, `classification` -> `classifications`"
    if word.endswith(("ss", "x", "z", "ch", "sh")): return f"{word}es"
    if word.endswith("s"): return word
    if word.endswith("y") and word[-2:-1] not in "aeiou": return f"{word[:-1]}ies"
    return f"{word}s"


def humanize(name: str) -> str:
    "`first_name` -> `First name`"
    text = name[:-3] if name.endswith("_id") else name
    return text.replace("_", " ").strip().capitalize()


def resource_type_for(class_name: str) -> str:
    "`EmployeeResource` -> `employees`"
    base = class_name[:-len("Resource")] if class_name.endswith("Resource") and class_name != "Resource" else class_name
    return pluralize(underscore(base))
