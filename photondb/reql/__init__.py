"""ReQL term types, query trees and datum values."""