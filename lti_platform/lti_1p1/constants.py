"""
LTI 1.0/1.1 constants: message types and role vocabulary.
"""

LTI_1P1_VERSION = 'LTI-1p0'

LTI_1P1_LAUNCH_MESSAGE_TYPE = 'basic-lti-launch-request'
LTI_1P1_CONTENT_ITEM_MESSAGE_TYPE = 'ContentItemSelectionRequest'
LTI_1P1_CONTENT_ITEM_RESPONSE_MESSAGE_TYPE = 'ContentItemSelection'

# Context roles from the LIS vocabulary, keyed by the role tokens used in role mappings.
# https://www.imsglobal.org/specs/ltiv1p1/implementation-guide#toc-16
LTI_1P1_ROLE_MAP = {
    'administrator': 'urn:lti:role:ims/lis/Administrator',
    'contentdeveloper': 'urn:lti:role:ims/lis/ContentDeveloper',
    'instructor': 'urn:lti:role:ims/lis/Instructor',
    'learner': 'urn:lti:role:ims/lis/Learner',
    'mentor': 'urn:lti:role:ims/lis/Mentor',
    'manager': 'urn:lti:role:ims/lis/Manager',
    'member': 'urn:lti:role:ims/lis/Member',
    'officer': 'urn:lti:role:ims/lis/Officer',
    'teachingassistant': 'urn:lti:role:ims/lis/TeachingAssistant',
}

# Maximum age of an incoming signed message, in seconds.
OAUTH_TIMESTAMP_TOLERANCE = 300
