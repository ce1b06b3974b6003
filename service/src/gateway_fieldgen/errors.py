class GeneratorError(Exception):
    """Base class for structural errors raised while generating statements."""


class UnknownTransformSource(GeneratorError):
    pass


class MissingRequiredTarget(GeneratorError):
    pass


class NonStringKey(GeneratorError):
    pass


class NonStringHeaderTarget(GeneratorError):
    pass


class IncompatibleType(GeneratorError):
    pass


class UnknownTargetPath(GeneratorError):
    pass


class PackageResolutionFailure(GeneratorError):
    pass


class InternalGeneratorFault(RuntimeError):
    """Raised for inputs that valid schemas can never produce."""


class InitializationError(Exception):
    pass


class EndpointNotFound(Exception):
    pass
