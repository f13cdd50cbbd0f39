"""Navigator Credstash Meta information.
   Navigator Credstash keeps versioned secrets encrypted with KMS data keys
   in a DynamoDB table.
"""
__title__ = 'navigator_credstash'
__description__ = (
   'Versioned secret store using KMS envelope encryption '
   'and DynamoDB.'
)
__version__ = '0.1.0'
__license__ = 'Apache-2.0'
