""" The dynamic value box. A :class:`Variant` carries a value together with
    its signature, so that values of differing wire types can share a
    container (the ``a{sv}`` property mapping being the usual example), and
    so that the concrete type can be discovered at decode time.
"""

from ..errors import TypeMismatchError
from . import signature as signatures


class Variant:
    """ A boxed *value* and the *signature* describing it. If the signature
        is omitted it is inferred from the value. The value is checked
        against the signature immediately, so a :class:`Variant` that exists
        is always encodable.

        :ivar signature: The signature of the boxed value; a single
            complete type.
        :ivar value: The boxed value.
    """

    type_signature = 'v'

    __slots__ = ('signature', 'value')

    def __init__(self, value, signature=None):

        if signature is None:
            signature = signatures.signature_of(value)
        else:
            signatures.single(signature)

        # Encode into a scratch buffer to check the value, containers included.

        from .marshal import Marshaller
        Marshaller().append(signature, value)

        self.signature = signature
        self.value = value


    @classmethod
    def _from_wire(cls, signature, value):
        """ Construct a :class:`Variant` from freshly decoded contents,
            where the signature is already known to describe the value.
        """

        instance = cls.__new__(cls)
        instance.signature = signature
        instance.value = value
        return instance


    def __eq__(self, other):

        if isinstance(other, Variant):
            return self.signature == other.signature and self.value == other.value

        return NotImplemented


    __hash__ = None


    def __repr__(self):
        return 'Variant(%s, signature=%s)' % (repr(self.value), repr(self.signature))


    def unbox(self, expected=None):
        """ Return the boxed value, checking that it is compatible with
            *expected*. See :func:`unbox`.
        """

        return unbox(self, expected)


# end of class Variant



def box(value, signature=None):
    """ Box *value* as a :class:`Variant`. An existing :class:`Variant` is
        returned as-is, unless *signature* is ``'v'``, in which case it is
        boxed a second time.
    """

    if isinstance(value, Variant) and signature is None:
        return value

    return Variant(value, signature)



def unbox(variant, expected=None):
    """ Return the value boxed in *variant*. The *expected* type may be a
        signature string, a wire class from :mod:`kbus.protocol.types`, or a
        native Python type such as ``int`` or ``str``; if the boxed
        signature is not compatible with it a
        :class:`kbus.errors.TypeMismatchError` is raised rather than
        returning a converted or truncated value.
    """

    if isinstance(variant, Variant):
        pass
    else:
        raise TypeMismatchError('a Variant', variant)

    if signatures.compatible(expected, variant.signature):
        return variant.value

    raise TypeMismatchError(signatures.describe(expected), variant.signature, 'variant contents')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
