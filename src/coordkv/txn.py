""" Transactions: a list of comparisons, and two lists of operations. The
    daemon evaluates every comparison, joined with a logical AND; if all of
    them hold it runs the ``success`` operations, otherwise the ``failure``
    operations. Exactly one branch runs, atomically. Nothing is evaluated
    locally; this module only assembles the request.

    ::

        def swap(txn):
            txn.compare = [txn.value('config', 'equal', 'old')]
            txn.success = [txn.put('config', 'new')]
            txn.failure = [txn.get('config')]

        result = client.transaction(swap)
"""

from . import response
from .json import to_bytes
from .namespace import lookup


COMPARE_TARGET = {
    'version': 0,
    'create': 1,
    'mod': 2,
    'value': 3,
    'lease': 4,
}

COMPARE_RESULT = {
    'equal': 0,
    'greater': 1,
    'less': 2,
    'not_equal': 3,
}


class Transaction:
    """ Builder for a single TXN request. Keys in comparisons and in branch
        operations go through the client's namespace translator exactly as
        a standalone get, put, or delete would.

        :ivar compare: Ordered list of comparison clauses.
        :ivar success: Operations to run if every comparison holds.
        :ivar failure: Operations to run otherwise.
    """

    def __init__(self, translator, session=None):

        self.translator = translator
        self.session = session

        self.compare = list()
        self.success = list()
        self.failure = list()


    def _compare(self, target, field, key, operator, expected):

        clause = dict()
        clause['target'] = COMPARE_TARGET[target]
        clause['result'] = lookup(COMPARE_RESULT, operator, 'comparison operator')
        clause['key'] = self.translator.prefix(key)
        clause[field] = expected
        return clause


    def value(self, key, operator, expected):
        return self._compare('value', 'value', key, operator, to_bytes(expected))


    def version(self, key, operator, expected):
        return self._compare('version', 'version', key, operator, int(expected))


    def create_revision(self, key, operator, expected):
        return self._compare('create', 'create_revision', key, operator, int(expected))


    def mod_revision(self, key, operator, expected):
        return self._compare('mod', 'mod_revision', key, operator, int(expected))


    def lease(self, key, operator, expected):
        return self._compare('lease', 'lease', key, operator, int(expected))


    def put(self, key, value, lease=None):

        operation = dict()
        operation['request_put'] = self.translator.build_put(key, value, lease)
        return operation


    def get(self, key, **options):

        operation = dict()
        operation['request_range'] = self.translator.build_get(key, **options)
        return operation


    def delete(self, key, range_end=''):

        operation = dict()
        operation['request_delete_range'] = self.translator.build_delete(key, range_end)
        return operation


    def fields(self):
        """ Return the payload fields for the TXN request. """

        fields = dict()
        fields['compare'] = list(self.compare)
        fields['success'] = list(self.success)
        fields['failure'] = list(self.failure)
        return fields


    def commit(self, timeout=None):
        """ Send the transaction and return a
            :class:`coordkv.response.TxnResponse`.
        """

        if self.session is None:
            raise RuntimeError('this transaction is not associated with a session')

        result = self.session.call('TXN', self.fields(), timeout)
        return response.TxnResponse(result)


# end of class Transaction


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
